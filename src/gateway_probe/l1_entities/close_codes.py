"""WebSocket close-code diagnosis.

Classification is diagnostic only: every close ends in the disconnected
state, the diagnosis just tells the user why.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

CLOSE_CODE_MEANINGS: dict[int, str] = {
    1000: 'Normal closure',
    1001: 'Going away',
    1002: 'Protocol error',
    1003: 'Unsupported data',
    1006: 'Abnormal closure',
    1007: 'Invalid frame payload data',
    1008: 'Policy violation',
    1009: 'Message too big',
    1011: 'Internal server error',
    4000: 'Bad request',
    4001: 'Unauthorized',
    4002: 'Payment required',
    4003: 'Forbidden',
    4004: 'Not found',
    4008: 'Request timeout',
}

ABNORMAL_CLOSURE = 1006


class CloseClassification(enum.Enum):
    AUTHENTICATION_FAILURE = 'authentication_failure'
    PROTOCOL_NEGOTIATION_FAILURE = 'protocol_negotiation_failure'
    ABNORMAL_CLOSURE = 'abnormal_closure'


_CLASSIFICATIONS: dict[int, CloseClassification] = {
    4001: CloseClassification.AUTHENTICATION_FAILURE,
    4003: CloseClassification.AUTHENTICATION_FAILURE,
    1002: CloseClassification.PROTOCOL_NEGOTIATION_FAILURE,
    1006: CloseClassification.ABNORMAL_CLOSURE,
}

_HINTS: dict[CloseClassification, str] = {
    CloseClassification.AUTHENTICATION_FAILURE: (
        'Authentication failed. Check your API keys and Gateway configuration.'
    ),
    CloseClassification.PROTOCOL_NEGOTIATION_FAILURE: (
        'Protocol error. The subprotocol authentication may not be supported.'
    ),
    CloseClassification.ABNORMAL_CLOSURE: (
        'Connection dropped without a close frame. The handshake may have been rejected.'
    ),
}


@dataclass(frozen=True)
class CloseDiagnosis:
    """What a close code means for the user."""

    code: int
    reason: str = ''

    @property
    def meaning(self) -> str | None:
        return CLOSE_CODE_MEANINGS.get(self.code)

    @property
    def classification(self) -> CloseClassification | None:
        return classify_close_code(self.code)

    @property
    def hint(self) -> str | None:
        classification = self.classification
        return _HINTS[classification] if classification is not None else None

    def describe(self) -> str:
        text = f'Code {self.code}, Reason: {self.reason or "No reason provided"}'
        if self.meaning:
            text += f' ({self.meaning})'
        return text


def classify_close_code(code: int) -> CloseClassification | None:
    """Map a close code to its diagnostic class. Normal and unknown codes map to None."""
    return _CLASSIFICATIONS.get(code)
