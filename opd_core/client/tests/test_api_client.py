# opd_core/client/tests/test_api_client.py
from unittest.mock import MagicMock, patch

import pytest
import requests

from opd_core.client.api import ApiClient
from opd_core.client.errors import (
    AuthorizationError,
    BusinessRuleConflict,
    NetworkError,
    NotFound,
    ServerError,
    ValidationFailed,
)
from opd_core.client.session import MemorySessionStore, SessionContext


def _response(status_code=200, body=None, headers=None):
    r = MagicMock()
    r.status_code = status_code
    r.ok = status_code < 400
    r.headers = headers or {}
    r.content = b"" if body is None else b"{}"
    if isinstance(body, Exception):
        r.json.side_effect = body
    else:
        r.json.return_value = body
    return r


def _envelope(code, message, details=None):
    return {"error": {"code": code, "message": message, "details": details, "request_id": "rid-1"}, "msg": message}


@pytest.fixture
def client():
    store = MemorySessionStore()
    return ApiClient("http://opd.test/api/", session=SessionContext(store))


def test_login_stores_session_and_sends_bearer(client):
    login = {"token": "tok-1", "refresh": "r", "user": {"id": 3, "username": "doctor", "role": "Doctor"}}
    with patch("requests.Session.request", return_value=_response(200, login)) as req:
        session = client.login("doctor", "pw")

    assert session.role == "Doctor"
    assert client.session.store.load()["token"] == "tok-1"
    args, kwargs = req.call_args
    assert args == ("POST", "http://opd.test/api/auth/login")
    assert "Authorization" not in kwargs["headers"]

    with patch("requests.Session.request", return_value=_response(200, [])) as req:
        assert client.get("doctor/registered-ops") == []
    assert req.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-1"


@pytest.mark.parametrize(
    "status, exc_type",
    [(400, ValidationFailed), (403, AuthorizationError), (404, NotFound), (409, BusinessRuleConflict), (500, ServerError)],
)
def test_error_statuses_map_to_taxonomy(client, status, exc_type):
    body = _envelope("some_code", "Server says no.", {"x": 1})
    with patch("requests.Session.request", return_value=_response(status, body)):
        with pytest.raises(exc_type) as exc:
            client.post("pharmacy/issue-medicines/1")

    assert str(exc.value) == "Server says no."
    assert exc.value.code == "some_code"
    assert exc.value.details == {"x": 1}
    assert exc.value.request_id == "rid-1"


def test_insufficient_stock_details_reach_caller(client):
    shortages = [{"medicine": "Cetirizine", "requested": 3, "available": 2}]
    body = _envelope("insufficient_stock", "Insufficient stock for: Cetirizine.", {"shortages": shortages})
    with patch("requests.Session.request", return_value=_response(409, body)):
        with pytest.raises(BusinessRuleConflict) as exc:
            client.issue_medicines(7)
    assert exc.value.details["shortages"] == shortages


def test_401_tears_session_down(client):
    client.session.login(token="old", user={"id": 1, "username": "lab", "role": "Lab"})
    reasons = []
    client.session.on_teardown(reasons.append)

    with patch("requests.Session.request", return_value=_response(401, _envelope("not_authenticated", "Expired."))):
        with pytest.raises(AuthorizationError):
            client.get("lab/queue")

    assert client.session.current is None
    assert client.session.store.load() is None
    assert reasons == ["unauthorized"]


def test_403_keeps_session(client):
    client.session.login(token="t", user={"id": 1, "username": "lab", "role": "Lab"})
    with patch("requests.Session.request", return_value=_response(403, _envelope("permission_denied", "No."))):
        with pytest.raises(AuthorizationError):
            client.get("pharmacy/queue")
    assert client.session.is_authenticated


def test_connection_failure_is_network_error(client):
    with patch("requests.Session.request", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(NetworkError):
            client.get("lab/queue")


def test_non_json_error_page_uses_status_message(client):
    with patch("requests.Session.request", return_value=_response(502, ValueError("no json"))):
        with pytest.raises(ServerError) as exc:
            client.get("lab/queue")
    assert "502" in str(exc.value)


def test_consultation_body_uses_wire_keys(client):
    with patch("requests.Session.request", return_value=_response(200, {"msg": "ok", "visit": {}})) as req:
        client.complete_consultation(5, diagnosis="Fever", medicines=[{"id": 1, "quantity": 2}], lab_tests=[9])

    assert req.call_args.kwargs["json"] == {
        "diagnosis": "Fever",
        "prescribedMedicines": [{"id": 1, "quantity": 2}],
        "orderedLabTests": [{"id": 9}],
    }


def test_from_env_reads_base_url(monkeypatch):
    monkeypatch.setenv("OPD_API_URL", "https://hospital.example/api/v1/")
    assert ApiClient.from_env().base_url == "https://hospital.example/api/v1"
