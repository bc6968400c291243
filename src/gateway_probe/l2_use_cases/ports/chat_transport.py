"""Port: HTTP chat completion transport."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from gateway_probe.l1_entities.chat_message import ChatMessage
from gateway_probe.l1_entities.chat_options import ChatOptions


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ChatResponse:
    """First choice of a non-streaming chat completion."""

    content: str
    role: str = 'assistant'
    usage: TokenUsage | None = None


class ChatTransport(Protocol):
    """Abstract chat completion transport. Zero framework types leak through."""

    async def complete(self, messages: list[ChatMessage], options: ChatOptions) -> ChatResponse:
        """Single request/response exchange."""
        ...

    def stream(self, messages: list[ChatMessage], options: ChatOptions) -> AsyncIterator[str]:
        """Yield content deltas; finishes only after the end-of-stream sentinel."""
        ...
