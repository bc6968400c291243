"""Conversation log entity — ordered turn history shared by both transports."""

from __future__ import annotations

from collections.abc import Iterator

from gateway_probe.l1_entities.chat_message import ChatMessage


class ConversationLog:
    """Append-only record of chat turns, insertion order = chronological order.

    Only ``pop_last`` (rollback of a failed turn) and ``clear`` remove entries.
    """

    def __init__(self, system_prompt: str | None = None) -> None:
        self._messages: list[ChatMessage] = []
        if system_prompt is not None:
            self._messages.append(ChatMessage(role='system', content=system_prompt))

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def pop_last(self) -> ChatMessage | None:
        """Remove and return the newest message, or None if the log is empty."""
        if not self._messages:
            return None
        return self._messages.pop()

    def clear(self) -> None:
        self._messages.clear()

    def snapshot(self) -> tuple[ChatMessage, ...]:
        """Read-only copy of the log in insertion order."""
        return tuple(m.model_copy() for m in self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.snapshot())
