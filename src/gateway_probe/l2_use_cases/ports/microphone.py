"""Port: microphone capture for realtime audio input."""

from __future__ import annotations

from typing import Protocol


class Microphone(Protocol):
    """Mono capture that hands out frames ready for ``input_audio_buffer.append``.

    Every frame is 16-bit little-endian PCM, one channel, at ``sample_rate`` Hz.
    """

    sample_rate: int

    def start(self) -> None: ...

    def read_frame(self, timeout: float) -> bytes | None:
        """Next captured frame, or None if nothing arrived within *timeout* seconds."""
        ...

    def stop(self) -> None:
        """Stop capturing and drop unread frames. Safe to call twice."""
        ...
