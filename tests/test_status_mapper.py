from request_bridge.envelope import Envelope, OperationStatus
from request_bridge.errors import CacheUnavailableError
from request_bridge.status_mapper import (
    STATUS_CODES,
    SUCCESS_CODE,
    error_response,
    http_status,
    to_response,
)


def test_every_status_has_exactly_one_code():
    for status in OperationStatus:
        assert status.value in STATUS_CODES
        assert isinstance(http_status(status), int)


def test_status_table_matches_outward_meaning():
    assert http_status(OperationStatus.CREATED) == 200
    assert http_status(OperationStatus.OK) == 200
    assert http_status(OperationStatus.EXISTS) == 209
    assert http_status(OperationStatus.TIMEOUT) == 408
    assert http_status(OperationStatus.NOT_FOUND) == 404
    assert http_status(OperationStatus.ERROR) == 500
    assert http_status(OperationStatus.INSUFFICIENT_BALANCE) == 402
    assert http_status(OperationStatus.FORBIDDEN) == 403


def test_unrecognised_status_maps_to_success():
    assert http_status("PROCESSING") == SUCCESS_CODE
    assert http_status("") == SUCCESS_CODE


def test_success_body_is_response_data():
    envelope = Envelope(correlation_id="k", status=OperationStatus.OK, response_data={"id": 1})
    assert to_response(envelope) == (200, {"id": 1})


def test_failure_body_carries_id_and_status():
    envelope = Envelope(
        correlation_id="abc123",
        status=OperationStatus.EXISTS,
        response_data={"id": "e1"},
    )
    code, body = to_response(envelope)

    assert code == 209
    assert body == {"correlation_id": "abc123", "status": "EXISTS", "response_data": {"id": "e1"}}


def test_error_response_exposes_bridge_errors_only():
    code, body = error_response(CacheUnavailableError("redis down"))
    assert code == 500
    assert body["error"] is True
    assert body["message"] == "redis down"
    assert isinstance(body["timestamp"], int)

    _, body = error_response(KeyError("secret internals"))
    assert "secret" not in body["message"]
