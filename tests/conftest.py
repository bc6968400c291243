"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from websockets.exceptions import ConnectionClosedError
from websockets.frames import Close

from gateway_probe.l1_entities.chat_message import ChatMessage
from gateway_probe.l1_entities.chat_options import ChatOptions
from gateway_probe.l1_entities.gateway_config import GatewayConfig
from gateway_probe.l1_entities.realtime_events import RealtimeEvent
from gateway_probe.l1_entities.session_state import SessionState
from gateway_probe.l2_use_cases.ports.chat_transport import ChatResponse, TokenUsage
from gateway_probe.l4_frameworks_and_drivers.config import ENV_OVERRIDES

# --- Protocol-conforming Fakes ---


class FakeChatTransport:
    """Fake chat transport for L2 use case tests."""

    def __init__(
        self,
        reply: str = 'Fake reply',
        deltas: list[str] | None = None,
        error: Exception | None = None,
        usage: TokenUsage | None = None,
    ) -> None:
        self.reply = reply
        self.deltas = list(deltas or [])
        self.error = error
        self.usage = usage
        self.gate: asyncio.Event | None = None
        self.complete_calls: list[tuple[list[ChatMessage], ChatOptions]] = []
        self.stream_calls: list[tuple[list[ChatMessage], ChatOptions]] = []

    async def complete(self, messages: list[ChatMessage], options: ChatOptions) -> ChatResponse:
        self.complete_calls.append((list(messages), options))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return ChatResponse(content=self.reply, usage=self.usage)

    async def stream(self, messages: list[ChatMessage], options: ChatOptions) -> AsyncIterator[str]:
        self.stream_calls.append((list(messages), options))
        for delta in self.deltas:
            yield delta
        if self.error is not None:
            raise self.error


class FakeRealtimeTransport:
    """Fake realtime transport for L2/L3 tests — records outbound traffic."""

    def __init__(self, events: list[RealtimeEvent] | None = None) -> None:
        self.state = SessionState.CONNECTED
        self._events = list(events or [])
        self.sent_text: list[tuple[str, list[str] | None]] = []
        self.sent_events: list[dict] = []
        self.audio: list[bytes] = []
        self.commits = 0
        self.append_error: Exception | None = None
        self.captures: list = []

    async def connect(self) -> SessionState:
        self.state = SessionState.CONNECTED
        return self.state

    async def send_text(self, text: str, modalities: list[str] | None = None) -> None:
        self.sent_text.append((text, modalities))

    async def send_event(self, event: dict) -> None:
        self.sent_events.append(event)

    async def append_audio(self, audio: bytes) -> None:
        if self.append_error is not None:
            raise self.append_error
        self.audio.append(audio)

    async def commit_audio_and_respond(self) -> None:
        self.commits += 1

    async def events(self) -> AsyncIterator[RealtimeEvent]:
        for event in self._events:
            yield event

    def attach_capture(self, capture) -> None:
        if capture not in self.captures:
            self.captures.append(capture)

    def detach_capture(self, capture) -> None:
        if capture in self.captures:
            self.captures.remove(capture)

    async def disconnect(self) -> None:
        self.state = SessionState.DISCONNECTED
        for capture in list(self.captures):
            capture.release()


class FakeMicrophone:
    """Fake microphone — implements Microphone protocol with canned PCM16 frames."""

    def __init__(self, frames: list[bytes] | None = None, sample_rate: int = 24000) -> None:
        self.sample_rate = sample_rate
        self._frames = list(frames or [])
        self.start_calls = 0
        self.stop_calls = 0
        self._idx = 0

    def start(self) -> None:
        self.start_calls += 1

    def read_frame(self, timeout: float = 0.1) -> bytes | None:
        if self._idx >= len(self._frames):
            time.sleep(min(timeout, 0.01))
            return None
        frame = self._frames[self._idx]
        self._idx += 1
        return frame

    def stop(self) -> None:
        self.stop_calls += 1


_END = object()


class FakeWebSocket:
    """In-memory stand-in for a websockets ClientConnection."""

    def __init__(
        self,
        subprotocol: str | None = 'realtime',
        send_error: Exception | None = None,
        close_delay: float = 0.0,
    ) -> None:
        self.subprotocol = subprotocol
        self.close_delay = close_delay
        self.sent: list[dict] = []
        self.send_error = send_error
        self.close_code: int | None = None
        self.close_reason = ''
        self.close_calls = 0
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(json.loads(data))

    def feed(self, message: dict | str) -> None:
        self._incoming.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def close_from_server(self, code: int, reason: str = '') -> None:
        self._incoming.put_nowait(ConnectionClosedError(Close(code, reason), None))

    def drop(self) -> None:
        """Connection lost without a close frame."""
        self._incoming.put_nowait(ConnectionClosedError(None, None))

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        if self.close_code is None:
            self.close_code = 1000
        self._incoming.put_nowait(_END)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    """Replaces websockets' connect(); counts handshakes and can be held open with ``gate``."""

    def __init__(self, ws: FakeWebSocket | None = None, error: Exception | None = None) -> None:
        self.ws = ws or FakeWebSocket()
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[dict] = []

    async def __call__(self, url: str, *, subprotocols=None, additional_headers=None) -> FakeWebSocket:
        self.calls.append({'url': url, 'subprotocols': subprotocols, 'additional_headers': additional_headers})
        ws = self.ws
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return ws


class FakeCapture:
    def __init__(self) -> None:
        self.release_calls = 0

    def release(self) -> None:
        self.release_calls += 1


# --- Standard Fixtures ---


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(
        account_id='acc123',
        gateway_id='gw456',
        api_key='sk-test-key',
        auth_token='cf-token',
        use_auth_gateway=True,
    )


@pytest.fixture
def empty_config() -> GatewayConfig:
    return GatewayConfig()


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
cf_ai_gateway_config:
  accountId: "acc123"
  gatewayId: "gw456"
  apiKey: "sk-file-key"
  authToken: ""
  useAuthGateway: false
  useInsecureSubprotocol: true
  model: "gpt-4o"
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p


@pytest.fixture
def fake_chat() -> FakeChatTransport:
    return FakeChatTransport()
