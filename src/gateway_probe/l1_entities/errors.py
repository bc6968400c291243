"""Domain error types."""

from __future__ import annotations

from gateway_probe.l1_entities.close_codes import CloseClassification, CloseDiagnosis

AUTH_REJECTION_STATUSES = frozenset({401, 403})


class GatewayProbeError(Exception):
    """Base class for every error raised by the gateway clients."""


class ConfigurationError(GatewayProbeError):
    """Raised when required gateway identifiers are missing."""


class GatewayHttpError(GatewayProbeError):
    """Raised when the gateway answers an HTTP call with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f'HTTP {status_code}: {body}')
        self.status_code = status_code
        self.body = body


class TransportError(GatewayProbeError):
    """Raised on network or socket failure before a protocol-level response."""


class ConnectError(TransportError):
    """Raised when a realtime socket closes before reaching the connected state.

    Carries the close diagnosis when the socket was closed by the peer, or the
    HTTP status when the upgrade handshake itself was rejected.
    """

    def __init__(
        self,
        message: str,
        diagnosis: CloseDiagnosis | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.diagnosis = diagnosis
        self.status_code = status_code

    @property
    def classification(self) -> CloseClassification | None:
        if self.status_code in AUTH_REJECTION_STATUSES:
            return CloseClassification.AUTHENTICATION_FAILURE
        return self.diagnosis.classification if self.diagnosis is not None else None


class IllegalStateError(GatewayProbeError):
    """Raised when an operation is invalid for the current session state."""


class ProtocolDecodeError(GatewayProbeError):
    """Raised when an inbound frame or response body cannot be decoded."""
