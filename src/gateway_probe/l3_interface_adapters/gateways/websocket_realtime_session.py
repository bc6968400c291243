"""Gateway: realtime session over WebSockets — implements RealtimeTransport port.

One class serves both variants of the realtime client:

* gateway (default): ``wss://<gateway>/.../realtime`` authenticated with
  subprotocols derived from GatewayConfig, optionally embedding the raw key;
* direct: the provider endpoint, authenticated with the insecure key token.

State machine::

    disconnected -> connecting -> connected -> disconnected
                         \\______________________/   (connect failure)
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus

from gateway_probe.l1_entities.close_codes import ABNORMAL_CLOSURE, CloseDiagnosis
from gateway_probe.l1_entities.errors import ConnectError, IllegalStateError, ProtocolDecodeError, TransportError
from gateway_probe.l1_entities.gateway_config import GatewayConfig, redact_subprotocol
from gateway_probe.l1_entities.realtime_events import (
    RealtimeEvent,
    RealtimeSessionSettings,
    SessionClosed,
    audio_append_event,
    audio_commit_event,
    parse_server_event,
    response_create_event,
    session_update_event,
    user_text_item_event,
)
from gateway_probe.l1_entities.session_state import SessionState
from gateway_probe.l2_use_cases.ports.realtime_transport import CaptureResource

log = logging.getLogger('gwp.realtime')

Connector = Callable[..., Awaitable[Any]]

CLIENT_DISCONNECT = CloseDiagnosis(1000, 'Client disconnect')
_READER_DRAIN_TIMEOUT = 2.0


def diagnose_connection_closed(exc: ConnectionClosed) -> CloseDiagnosis:
    """Close diagnosis from a websockets ConnectionClosed (no frame received → 1006)."""
    frame = exc.rcvd if exc.rcvd is not None else exc.sent
    if frame is None:
        return CloseDiagnosis(ABNORMAL_CLOSURE)
    return CloseDiagnosis(frame.code, frame.reason)


@dataclass(eq=False)
class _Link:
    """One open socket with its reader task and event queue."""

    ws: Any
    events: asyncio.Queue[RealtimeEvent | None] = field(default_factory=asyncio.Queue)
    reader: asyncio.Task | None = None
    diagnosis: CloseDiagnosis | None = None


class WebSocketRealtimeSession:
    """A single realtime session. Exactly one socket per session object at a time.

    Each successful connect() creates a fresh ``_Link``. Reader tasks and
    late-finishing disconnects only touch session state while their link is
    still the current one, so a reconnect is never torn down by the previous
    connection's shutdown.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        direct: bool = False,
        header_auth: bool = False,
        settings: RealtimeSessionSettings | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._config = config
        self._direct = direct
        self._header_auth = header_auth
        self._settings = settings or RealtimeSessionSettings(voice=config.voice)
        self._connector: Connector = connector or ws_connect

        self._state = SessionState.DISCONNECTED
        self._link: _Link | None = None
        self._events: asyncio.Queue[RealtimeEvent | None] | None = None
        self._captures: list[CaptureResource] = []

        self.connection_attempts = 0
        self.last_close: CloseDiagnosis | None = None
        self.negotiated_subprotocol: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def handshake(self) -> tuple[str, list[str], dict[str, str]]:
        """URL, subprotocols and extra headers for the upgrade request."""
        model = self._config.realtime_model
        if self._direct:
            return self._config.derive_direct_websocket_url(model), self._config.build_direct_subprotocols(), {}
        url = self._config.derive_websocket_base_url(model)
        headers = self._config.build_websocket_headers() if self._header_auth else {}
        return url, self._config.build_websocket_subprotocols(), headers

    def _is_current_attempt(self, attempt: int) -> bool:
        return self._state is SessionState.CONNECTING and self.connection_attempts == attempt

    def _abandon_attempt(self, attempt: int) -> None:
        if self._is_current_attempt(attempt):
            self._state = SessionState.DISCONNECTED

    async def connect(self) -> SessionState:
        if self._state is not SessionState.DISCONNECTED:
            log.debug('connect() ignored in state %s', self._state.value)
            return self._state

        url, protocols, headers = self.handshake()
        self._state = SessionState.CONNECTING
        self.connection_attempts += 1
        attempt = self.connection_attempts
        log.info('Connecting to %s', url)
        log.info('Subprotocols: %s', ', '.join(redact_subprotocol(p) for p in protocols))

        try:
            ws = await self._connector(url, subprotocols=protocols, additional_headers=headers or None)
        except InvalidStatus as e:
            self._abandon_attempt(attempt)
            status = e.response.status_code
            raise ConnectError(f'Handshake rejected with HTTP {status}', status_code=status) from e
        except ConnectionClosed as e:
            diagnosis = diagnose_connection_closed(e)
            if self._is_current_attempt(attempt):
                self._state = SessionState.DISCONNECTED
                self.last_close = diagnosis
            raise ConnectError(f'Connection closed during handshake: {diagnosis.describe()}', diagnosis) from e
        except (InvalidHandshake, OSError, asyncio.TimeoutError) as e:
            self._abandon_attempt(attempt)
            raise ConnectError(f'Failed to open WebSocket: {e}', CloseDiagnosis(ABNORMAL_CLOSURE, str(e))) from e

        # disconnect() or a newer connect() may run while the handshake is in flight
        if not self._is_current_attempt(attempt):
            await ws.close()
            raise ConnectError('Disconnected while connecting')

        try:
            await ws.send(json.dumps(session_update_event(self._settings)))
        except ConnectionClosed as e:
            diagnosis = diagnose_connection_closed(e)
            if self._is_current_attempt(attempt):
                self._state = SessionState.DISCONNECTED
                self.last_close = diagnosis
            self._log_close(diagnosis)
            raise ConnectError(f'Connection closed before session was configured: {diagnosis.describe()}', diagnosis) from e
        if not self._is_current_attempt(attempt):
            await ws.close()
            raise ConnectError('Disconnected while connecting')

        link = _Link(ws)
        self._link = link
        self._events = link.events
        self.negotiated_subprotocol = getattr(ws, 'subprotocol', None)
        self._state = SessionState.CONNECTED
        link.reader = asyncio.create_task(self._read_loop(link))
        log.info('WebSocket connection established (subprotocol=%s)', self.negotiated_subprotocol)
        return self._state

    async def _send(self, event: dict[str, Any]) -> None:
        link = self._link
        if self._state is not SessionState.CONNECTED or link is None:
            raise IllegalStateError(f'Cannot send {event.get("type")!r} while {self._state.value}')
        try:
            await link.ws.send(json.dumps(event))
        except ConnectionClosed as e:
            raise TransportError(f'Connection closed while sending: {diagnose_connection_closed(e).describe()}') from e
        log.debug('Sent %s', event.get('type'))

    async def send_event(self, event: dict[str, Any]) -> None:
        await self._send(event)

    async def send_text(self, text: str, modalities: list[str] | None = None) -> None:
        await self._send(user_text_item_event(text))
        await self._send(response_create_event(modalities))

    async def append_audio(self, audio: bytes) -> None:
        await self._send(audio_append_event(audio))

    async def commit_audio_and_respond(self) -> None:
        await self._send(audio_commit_event())
        await self._send(response_create_event())

    async def events(self) -> AsyncIterator[RealtimeEvent]:
        """Events of the most recent connection, ending after its SessionClosed."""
        if self._events is None:
            raise IllegalStateError('Session has never been connected')
        queue = self._events
        while True:
            event = await queue.get()
            if event is None:
                return
            yield event

    def attach_capture(self, capture: CaptureResource) -> None:
        if capture not in self._captures:
            self._captures.append(capture)

    def detach_capture(self, capture: CaptureResource) -> None:
        if capture in self._captures:
            self._captures.remove(capture)

    def _release_captures(self) -> None:
        for capture in list(self._captures):
            capture.release()
        self._captures.clear()

    async def _read_loop(self, link: _Link) -> None:
        ws = link.ws
        try:
            async for raw in ws:
                try:
                    event = parse_server_event(raw)
                except ProtocolDecodeError as e:
                    log.warning('%s', e)
                    continue
                if event is None:
                    log.debug('Ignoring unrecognized event: %.80s', raw)
                    continue
                log.debug('Received %s', event.type)
                await link.events.put(event)
        except ConnectionClosed as e:
            diagnosis = diagnose_connection_closed(e)
        except OSError as e:
            diagnosis = CloseDiagnosis(ABNORMAL_CLOSURE, str(e))
        else:
            code = getattr(ws, 'close_code', None)
            diagnosis = CloseDiagnosis(code if code is not None else ABNORMAL_CLOSURE, getattr(ws, 'close_reason', '') or '')
        self._finish(link, diagnosis)

    def _finish(self, link: _Link, diagnosis: CloseDiagnosis) -> None:
        """End *link*'s event stream once; session state changes only if *link* is still current."""
        if link.diagnosis is not None:
            return
        link.diagnosis = diagnosis
        if link is self._link:
            self._link = None
            self._state = SessionState.DISCONNECTED
            self.last_close = diagnosis
            self._release_captures()
        self._log_close(diagnosis)
        link.events.put_nowait(SessionClosed(diagnosis=diagnosis))
        link.events.put_nowait(None)

    @staticmethod
    def _log_close(diagnosis: CloseDiagnosis) -> None:
        log.info('Connection closed: %s', diagnosis.describe())
        if diagnosis.hint:
            log.warning('%s', diagnosis.hint)

    async def disconnect(self) -> None:
        link, self._link = self._link, None
        if self._state is SessionState.DISCONNECTED and link is None:
            self._release_captures()
            return
        # detached before any await so a concurrent connect() starts from a clean slate
        self._state = SessionState.DISCONNECTED
        self._release_captures()
        if link is None:
            return
        try:
            await link.ws.close()
        except (ConnectionClosed, OSError) as e:
            log.debug('Error while closing socket: %s', e)
        reader = link.reader
        if reader is not None and reader is not asyncio.current_task():
            done, _ = await asyncio.wait({reader}, timeout=_READER_DRAIN_TIMEOUT)
            if not done:
                reader.cancel()
        self._finish(link, CLIENT_DISCONNECT)
        if self._link is None:
            self.last_close = link.diagnosis
