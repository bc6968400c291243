"""Tests for the error taxonomy."""

from gateway_probe.l1_entities.close_codes import CloseClassification, CloseDiagnosis
from gateway_probe.l1_entities.errors import (
    ConfigurationError,
    ConnectError,
    GatewayHttpError,
    GatewayProbeError,
    IllegalStateError,
    ProtocolDecodeError,
    TransportError,
)


class TestErrors:
    def test_hierarchy(self):
        for cls in (ConfigurationError, GatewayHttpError, TransportError, IllegalStateError, ProtocolDecodeError):
            assert issubclass(cls, GatewayProbeError)
        assert issubclass(ConnectError, TransportError)

    def test_http_error_carries_status_and_body(self):
        e = GatewayHttpError(401, '{"error": "bad key"}')
        assert e.status_code == 401
        assert e.body == '{"error": "bad key"}'
        assert str(e) == 'HTTP 401: {"error": "bad key"}'

    def test_connect_error_classification_from_diagnosis(self):
        e = ConnectError('closed', CloseDiagnosis(4001, 'Unauthorized'))
        assert e.classification is CloseClassification.AUTHENTICATION_FAILURE

    def test_connect_error_classification_from_status(self):
        e = ConnectError('rejected', status_code=403)
        assert e.classification is CloseClassification.AUTHENTICATION_FAILURE

    def test_connect_error_without_detail(self):
        assert ConnectError('nope').classification is None
