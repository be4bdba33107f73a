# opd_core/client/api.py
from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Mapping

import requests

from opd_core.client.errors import NetworkError, error_from_response
from opd_core.client.session import Session, SessionContext

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000/api"
DEFAULT_TIMEOUT = 10


class ApiClient:
    """
    Bearer-token client for the outpatient API.

    Every failure is raised as an `ApiError` subclass carrying the server's
    message. A 401 on an authenticated call tears the session down.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        session: SessionContext | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or SessionContext()
        self.timeout = timeout
        self.http = http or requests.Session()

    @classmethod
    def from_env(cls, **kwargs) -> "ApiClient":
        base_url = os.getenv("OPD_API_URL", DEFAULT_BASE_URL)
        timeout = float(os.getenv("OPD_API_TIMEOUT", str(DEFAULT_TIMEOUT)))
        return cls(base_url, timeout=timeout, **kwargs)

    # ---- transport ----

    def request(self, method: str, path: str, *, json: Any = None, params: Mapping | None = None, auth: bool = True):
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if auth and self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"

        try:
            response = self.http.request(method, url, json=json, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise NetworkError(f"Could not reach the server: {e}") from e

        if response.status_code == 401 and auth and self.session.is_authenticated:
            self.session.teardown("unauthorized")

        if not response.ok:
            err = error_from_response(response)
            logger.info("%s %s -> %s %s", method, url, response.status_code, err.code)
            raise err

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError("Server returned a non-JSON response.", status_code=response.status_code) from e

    def get(self, path: str, **params):
        return self.request("GET", path, params=params or None)

    def post(self, path: str, body: Any = None):
        return self.request("POST", path, json=body)

    def put(self, path: str, body: Any = None):
        return self.request("PUT", path, json=body)

    def delete(self, path: str):
        return self.request("DELETE", path)

    # ---- session ----

    def login(self, username: str, password: str) -> Session:
        data = self.request("POST", "auth/login", json={"username": username, "password": password}, auth=False)
        return self.session.login(token=data["token"], user=data["user"])

    def logout(self) -> None:
        self.session.logout()

    def forgot_password(self, email: str) -> str:
        return self.request("POST", "auth/forgot-password", json={"email": email}, auth=False)["msg"]

    def reset_password(self, token: str, password: str) -> str:
        return self.request("POST", f"auth/reset-password/{token}", json={"password": password}, auth=False)["msg"]

    # ---- invalidation ----

    def topic_versions(self) -> dict[str, int]:
        return self.get("notifications/topics")

    # ---- OP desk ----

    def register_patient(self, data: Mapping[str, Any]) -> dict:
        return self.post("op/register", dict(data))

    def create_visit(self, op_number: str, reason_for_visit: str = "") -> dict:
        return self.post("op/create-visit", {"op_number": op_number, "reason_for_visit": reason_for_visit})

    def patient_details(self, op_number: str) -> dict:
        return self.get(f"op/patient-details/{op_number}")

    def approve_patient(self, aadhar: str) -> dict:
        return self.post(f"op/approve-patient/{aadhar}")

    # ---- doctor ----

    def complete_consultation(
        self,
        visit_id: int,
        *,
        diagnosis: str,
        medicines: Iterable[Mapping[str, int]] = (),
        lab_tests: Iterable[int] = (),
    ) -> dict:
        return self.post(
            f"doctor/complete-consultation/{visit_id}",
            {
                "diagnosis": diagnosis,
                "prescribedMedicines": [dict(m) for m in medicines],
                "orderedLabTests": [{"id": i} for i in lab_tests],
            },
        )

    def update_diagnosis(self, visit_id: int, diagnosis: str) -> dict:
        return self.put(f"doctor/update-diagnosis/{visit_id}", {"diagnosis": diagnosis})

    def add_medicines(self, visit_id: int, medicines: Iterable[Mapping[str, int]] = ()) -> dict:
        return self.post(f"doctor/add-medicines/{visit_id}", {"prescribedMedicines": [dict(m) for m in medicines]})

    # ---- pharmacy / lab ----

    def issue_medicines(self, visit_id: int) -> dict:
        return self.post(f"pharmacy/issue-medicines/{visit_id}")

    def upload_report(self, ordered_lab_test_id: int, report_url: str) -> dict:
        return self.post(f"lab/upload-report/{ordered_lab_test_id}", {"report_url": report_url})
