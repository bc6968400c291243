"""Fold Server-Sent-Event chat completion frames into one assistant message."""

from __future__ import annotations

import json
import logging

from gateway_probe.l1_entities.errors import ProtocolDecodeError

log = logging.getLogger('gwp.sse')

DATA_PREFIX = 'data:'
DONE_SENTINEL = '[DONE]'


def parse_sse_line(line: str) -> str | None:
    """Return the content delta carried by *line*, or None if it carries none.

    Raises ProtocolDecodeError when a ``data:`` fragment is not valid JSON.
    """
    payload = line[len(DATA_PREFIX) :].strip()
    try:
        parsed = json.loads(payload)
    except ValueError as e:
        raise ProtocolDecodeError(f'Failed to parse streaming data: {payload[:80]!r}') from e
    try:
        content = parsed['choices'][0]['delta'].get('content')
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content or None


class SseDeltaAccumulator:
    """Accumulates ``data:`` deltas until the ``data: [DONE]`` sentinel.

    Malformed fragments are logged and skipped; they never abort the stream.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self.done = False
        self.skipped = 0

    @property
    def text(self) -> str:
        return ''.join(self._parts)

    def feed(self, line: str) -> str | None:
        """Consume one line of the body. Returns the new delta, if any."""
        line = line.strip()
        if self.done or not line.startswith(DATA_PREFIX):
            return None
        if line[len(DATA_PREFIX) :].strip() == DONE_SENTINEL:
            self.done = True
            return None
        try:
            delta = parse_sse_line(line)
        except ProtocolDecodeError as e:
            self.skipped += 1
            log.warning('%s', e)
            return None
        if delta:
            self._parts.append(delta)
        return delta
