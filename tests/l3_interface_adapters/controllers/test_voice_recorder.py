"""Tests for VoiceRecorder — microphone capture streamed into a realtime session."""

from __future__ import annotations

import asyncio

import pytest

from gateway_probe.l1_entities.errors import IllegalStateError, TransportError
from gateway_probe.l1_entities.session_state import SessionState
from gateway_probe.l3_interface_adapters.controllers.voice_recorder import VoiceRecorder
from tests.conftest import FakeMicrophone, FakeRealtimeTransport


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


def _frames(n: int) -> list[bytes]:
    return [bytes([i, 0]) * 4 for i in range(n)]


class TestVoiceRecorder:
    @pytest.mark.asyncio
    async def test_forwards_frames_in_order_then_commits(self):
        session = FakeRealtimeTransport()
        mic = FakeMicrophone(_frames(3))
        recorder = VoiceRecorder(session, lambda: mic, read_timeout=0.01)

        await recorder.start()
        await _wait_for(lambda: recorder.chunks_sent == 3)
        await recorder.stop()

        assert mic.start_calls == 1
        assert mic.stop_calls == 1
        assert session.audio == _frames(3)
        assert session.commits == 1
        assert not recorder.is_recording
        assert session.captures == []

    @pytest.mark.asyncio
    async def test_start_requires_connected_session(self):
        session = FakeRealtimeTransport()
        session.state = SessionState.DISCONNECTED
        mic = FakeMicrophone()
        recorder = VoiceRecorder(session, lambda: mic)

        with pytest.raises(IllegalStateError):
            await recorder.start()
        assert mic.start_calls == 0

    @pytest.mark.asyncio
    async def test_double_start_rejected(self):
        session = FakeRealtimeTransport()
        recorder = VoiceRecorder(session, FakeMicrophone, read_timeout=0.01)

        await recorder.start()
        with pytest.raises(IllegalStateError):
            await recorder.start()
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_fresh_microphone_per_recording(self):
        session = FakeRealtimeTransport()
        mics: list[FakeMicrophone] = []

        def _factory() -> FakeMicrophone:
            mics.append(FakeMicrophone(_frames(1)))
            return mics[-1]

        recorder = VoiceRecorder(session, _factory, read_timeout=0.01)
        for _ in range(2):
            await recorder.start()
            await _wait_for(lambda: recorder.chunks_sent == 1)
            await recorder.stop()

        assert [m.stop_calls for m in mics] == [1, 1]
        assert session.commits == 2

    @pytest.mark.asyncio
    async def test_stop_without_start_does_not_commit(self):
        session = FakeRealtimeTransport()
        recorder = VoiceRecorder(session, FakeMicrophone)

        await recorder.stop()

        assert session.commits == 0

    @pytest.mark.asyncio
    async def test_session_disconnect_releases_microphone(self):
        session = FakeRealtimeTransport()
        mic = FakeMicrophone()
        recorder = VoiceRecorder(session, lambda: mic, read_timeout=0.01)
        await recorder.start()

        await session.disconnect()

        assert mic.stop_calls == 1
        assert not recorder.is_recording
        assert session.commits == 0

    @pytest.mark.asyncio
    async def test_send_failure_releases_microphone(self):
        session = FakeRealtimeTransport()
        session.append_error = TransportError('closed')
        mic = FakeMicrophone(_frames(1))
        recorder = VoiceRecorder(session, lambda: mic, read_timeout=0.01)

        await recorder.start()
        await _wait_for(lambda: not recorder.is_recording)

        assert mic.stop_calls == 1
        assert session.captures == []

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self):
        session = FakeRealtimeTransport()
        mic = FakeMicrophone()
        recorder = VoiceRecorder(session, lambda: mic, read_timeout=0.01)
        await recorder.start()

        recorder.release()
        recorder.release()

        assert mic.stop_calls == 1
