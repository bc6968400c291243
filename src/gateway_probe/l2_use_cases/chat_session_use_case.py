"""Use case: multi-turn chat over the HTTP transport with rollback on failure."""

from __future__ import annotations

import logging
from collections.abc import Callable

from gateway_probe.l1_entities.chat_message import ChatMessage
from gateway_probe.l1_entities.chat_options import ChatOptions
from gateway_probe.l1_entities.conversation_log import ConversationLog
from gateway_probe.l1_entities.errors import IllegalStateError
from gateway_probe.l2_use_cases.ports.chat_transport import ChatTransport, TokenUsage

log = logging.getLogger('gwp.chat')

DEFAULT_SYSTEM_PROMPT = 'You are a helpful assistant connected through Cloudflare AI Gateway.'


class ChatSessionUseCase:
    """Owns a ConversationLog and drives one chat turn at a time through a ChatTransport.

    The user turn is appended optimistically before the request goes out. If
    the exchange fails for any reason (HTTP status, network, decode,
    cancellation) it is popped again so a retry does not duplicate it.
    """

    def __init__(
        self,
        transport: ChatTransport,
        system_prompt: str | None = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._transport = transport
        self.log = ConversationLog(system_prompt)
        self.last_usage: TokenUsage | None = None
        self.model: str | None = None
        self._in_flight = False

    async def send(
        self,
        text: str,
        options: ChatOptions | None = None,
        on_delta: Callable[[str], None] | None = None,
    ) -> str:
        """Send *text* as the next user turn. Returns the assistant reply.

        With ``options.stream`` set, *on_delta* sees each content fragment as
        it arrives; the log only receives the assistant turn once the stream
        has finished.
        """
        if self._in_flight:
            raise IllegalStateError('A chat request is already in flight for this conversation')
        options = options or ChatOptions()
        if options.model is None and self.model:
            options = options.model_copy(update={'model': self.model})
        self._in_flight = True
        self.log.append(ChatMessage(role='user', content=text))
        try:
            if options.stream:
                reply = await self._exchange_streaming(options, on_delta)
            else:
                reply = await self._exchange(options)
        except BaseException:
            self.log.pop_last()
            log.info('Rolled back user turn after failed exchange (log length %d)', len(self.log))
            raise
        finally:
            self._in_flight = False
        self.log.append(ChatMessage(role='assistant', content=reply))
        return reply

    async def _exchange(self, options: ChatOptions) -> str:
        response = await self._transport.complete(list(self.log.snapshot()), options)
        self.last_usage = response.usage
        if response.usage is not None:
            log.info(
                'Tokens - Prompt: %d, Completion: %d, Total: %d',
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
                response.usage.total_tokens,
            )
        return response.content

    async def _exchange_streaming(self, options: ChatOptions, on_delta: Callable[[str], None] | None) -> str:
        parts: list[str] = []
        async for delta in self._transport.stream(list(self.log.snapshot()), options):
            parts.append(delta)
            if on_delta is not None:
                on_delta(delta)
        self.last_usage = None
        return ''.join(parts)

    def reset(self, system_prompt: str | None = DEFAULT_SYSTEM_PROMPT) -> None:
        """Clear the history, optionally re-seeding it with a system prompt."""
        self.log.clear()
        if system_prompt is not None:
            self.log.append(ChatMessage(role='system', content=system_prompt))

    def set_model(self, model: str | None) -> None:
        """Override the transport's default model for subsequent turns (None restores it)."""
        self.model = model or None
        log.info('Chat model override: %s', self.model)

    def history(self) -> tuple[ChatMessage, ...]:
        return self.log.snapshot()
