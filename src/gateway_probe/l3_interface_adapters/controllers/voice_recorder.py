"""VoiceRecorder — streams microphone audio into a realtime session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from gateway_probe.l1_entities.errors import GatewayProbeError, IllegalStateError
from gateway_probe.l1_entities.session_state import SessionState
from gateway_probe.l2_use_cases.ports.microphone import Microphone
from gateway_probe.l2_use_cases.ports.realtime_transport import RealtimeTransport

log = logging.getLogger('gwp.recorder')


class VoiceRecorder:
    """Owns the microphone between "start recording" and "stop recording".

    The microphone is acquired in ``start`` and released on every exit
    path: ``stop``, a send failure inside the pump, or the session
    disconnecting (the recorder is attached to the session as a capture).
    """

    def __init__(
        self,
        session: RealtimeTransport,
        microphone_factory: Callable[[], Microphone],
        read_timeout: float = 0.1,
    ) -> None:
        self._session = session
        self._microphone_factory = microphone_factory
        self._read_timeout = read_timeout
        self._mic: Microphone | None = None
        self._task: asyncio.Task | None = None
        self.chunks_sent = 0

    @property
    def is_recording(self) -> bool:
        return self._mic is not None

    async def start(self) -> None:
        if self.is_recording:
            raise IllegalStateError('Already recording')
        if self._session.state is not SessionState.CONNECTED:
            raise IllegalStateError('Connect before recording')
        mic = self._microphone_factory()
        mic.start()
        self._mic = mic
        self.chunks_sent = 0
        self._session.attach_capture(self)
        self._task = asyncio.create_task(self._pump(mic))
        log.info('Recording started at %d Hz', mic.sample_rate)

    async def _pump(self, mic: Microphone) -> None:
        try:
            while self._mic is mic:
                frame = await asyncio.to_thread(mic.read_frame, self._read_timeout)
                if frame is None or self._mic is not mic:
                    continue
                await self._session.append_audio(frame)
                self.chunks_sent += 1
        except GatewayProbeError as e:
            log.warning('Audio streaming stopped: %s', e)
        finally:
            if self._mic is mic:
                self.release()

    def release(self) -> None:
        """Stop the pump and close the microphone. Idempotent."""
        mic, self._mic = self._mic, None
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        if mic is not None:
            mic.stop()
            log.info('Recording released after %d chunks', self.chunks_sent)
        self._session.detach_capture(self)

    async def stop(self) -> None:
        """Release the microphone, then commit the buffered audio and request a response."""
        was_recording = self.is_recording
        self.release()
        if was_recording:
            await self._session.commit_audio_and_respond()
