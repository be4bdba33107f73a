# opd_core/common/tests/test_error_envelope.py
import pytest
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.test import APIRequestFactory

from opd_core.common.api.exceptions import api_exception_handler, build_error_envelope
from opd_core.common.errors import InsufficientStock, InvalidTransition, NotFound, ValidationFailed


def _ctx():
    req = APIRequestFactory().get("/api/doctor/registered-ops")
    return {"request": req}


def test_envelope_shape_carries_request_id_and_msg():
    body = build_error_envelope(code="x", message="Nope.", details={"a": 1})
    assert body["msg"] == "Nope."
    assert body["error"]["code"] == "x"
    assert body["error"]["details"] == {"a": 1}
    assert len(body["error"]["request_id"]) == 32


@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (ValidationFailed("Bad."), 400, "validation_error"),
        (NotFound("Visit not found."), 404, "not_found"),
        (InvalidTransition("Cannot."), 409, "invalid_transition"),
        (InsufficientStock(details={"shortages": []}), 409, "insufficient_stock"),
    ],
)
def test_domain_errors_map_to_status_and_code(exc, status_code, code):
    res = api_exception_handler(exc, _ctx())
    assert res.status_code == status_code
    assert res.data["error"]["code"] == code
    assert res.data["msg"] == exc.message


def test_domain_error_details_keep_their_types():
    exc = InsufficientStock(details={"shortages": [{"medicine_id": 7, "requested": 5, "available": 2}]})
    res = api_exception_handler(exc, _ctx())
    assert res.data["error"]["details"]["shortages"][0]["available"] == 2


def test_single_field_validation_error_becomes_banner_message():
    res = api_exception_handler(ValidationError({"phone": ["Phone number must be exactly 10 digits."]}), _ctx())
    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"
    assert res.data["msg"] == "phone: Phone number must be exactly 10 digits."


def test_permission_denied_envelope():
    res = api_exception_handler(PermissionDenied(), _ctx())
    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"


def test_unhandled_error_is_500_server_error():
    res = api_exception_handler(RuntimeError("kaboom"), _ctx())
    assert res.status_code == 500
    assert res.data["error"]["code"] == "server_error"
    assert "kaboom" not in res.data["msg"]
