"""Port: realtime (WebSocket) session."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from gateway_probe.l1_entities.realtime_events import RealtimeEvent
from gateway_probe.l1_entities.session_state import SessionState


class CaptureResource(Protocol):
    """Something the session must release when it disconnects (e.g. a microphone)."""

    def release(self) -> None: ...


class RealtimeTransport(Protocol):
    """Abstract long-lived realtime session."""

    @property
    def state(self) -> SessionState: ...

    async def connect(self) -> SessionState:
        """Open the session. No-op returning the current state unless disconnected."""
        ...

    async def send_text(self, text: str, modalities: list[str] | None = None) -> None: ...

    async def send_event(self, event: dict[str, Any]) -> None: ...

    async def append_audio(self, audio: bytes) -> None: ...

    async def commit_audio_and_respond(self) -> None: ...

    def events(self) -> AsyncIterator[RealtimeEvent]:
        """Inbound events in arrival order, ending with a SessionClosed event."""
        ...

    def attach_capture(self, capture: CaptureResource) -> None: ...

    def detach_capture(self, capture: CaptureResource) -> None: ...

    async def disconnect(self) -> None:
        """Close the session. Safe in any state."""
        ...
