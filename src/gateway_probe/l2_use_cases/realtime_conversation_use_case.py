"""Use case: fold realtime session events into the shared conversation log."""

from __future__ import annotations

import logging
from collections.abc import Callable

from gateway_probe.l1_entities.chat_message import ChatMessage
from gateway_probe.l1_entities.conversation_log import ConversationLog
from gateway_probe.l1_entities.realtime_events import (
    ConversationInterrupted,
    ConversationItemCreated,
    RealtimeEvent,
    ResponseCreated,
    ResponseDone,
    ResponseTextDelta,
    ResponseTextDone,
    SessionClosed,
)
from gateway_probe.l2_use_cases.ports.realtime_transport import RealtimeTransport

log = logging.getLogger('gwp.realtime.conversation')


class RealtimeConversationUseCase:
    """Tracks the turns of a realtime session in a ConversationLog.

    Text deltas are accumulated per response and committed as one assistant
    message on ``response.text.done`` (or ``response.done``). An interruption
    commits whatever has arrived so far and ignores further deltas until the
    next response starts.
    """

    def __init__(self, transport: RealtimeTransport, conversation_log: ConversationLog | None = None) -> None:
        self._transport = transport
        self.log = conversation_log if conversation_log is not None else ConversationLog()
        self._parts: list[str] = []
        self._accumulating = False
        self._interrupted = False

    @property
    def partial_text(self) -> str:
        return ''.join(self._parts)

    async def send_text(self, text: str, modalities: list[str] | None = None) -> None:
        await self._transport.send_text(text, modalities)
        self.log.append(ChatMessage(role='user', content=text))

    def apply(self, event: RealtimeEvent) -> None:
        if isinstance(event, ResponseCreated):
            self._parts = []
            self._accumulating = True
            self._interrupted = False
        elif isinstance(event, ResponseTextDelta):
            if not self._accumulating and not self._interrupted:
                self._accumulating = True
            if self._accumulating:
                self._parts.append(event.delta)
        elif isinstance(event, ResponseTextDone):
            if self._accumulating:
                self._commit(event.text or self.partial_text)
        elif isinstance(event, ResponseDone):
            if self._accumulating:
                self._commit(self.partial_text)
        elif isinstance(event, ConversationInterrupted):
            if self._accumulating:
                log.debug('Interrupted with %d chars accumulated', len(self.partial_text))
                self._commit(self.partial_text)
            self._interrupted = True
        elif isinstance(event, ConversationItemCreated):
            log.debug('Item created: %s', event.item.get('id'))
        elif isinstance(event, SessionClosed):
            if self._accumulating:
                self._commit(self.partial_text)

    def _commit(self, text: str) -> None:
        if text:
            self.log.append(ChatMessage(role='assistant', content=text))
        self._parts = []
        self._accumulating = False

    async def run(self, on_event: Callable[[RealtimeEvent], None] | None = None) -> None:
        """Consume the session's event stream until it closes."""
        async for event in self._transport.events():
            self.apply(event)
            if on_event is not None:
                on_event(event)
