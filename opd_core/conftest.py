# opd_core/conftest.py
import itertools

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from opd_core.common.events import bus
from opd_core.common.permissions import (
    ROLE_DOCTOR,
    ROLE_LAB,
    ROLE_MASTER,
    ROLE_OFFICE,
    ROLE_OP,
    ROLE_PHARMACY,
)

_aadhar_seq = itertools.count(100000000001)


def next_aadhar() -> str:
    return str(next(_aadhar_seq))


def patient_payload(**overrides):
    """Minimal valid university-member registration body."""
    body = {
        "name": "Ravi Kumar",
        "aadhar": next_aadhar(),
        "phone": "9876543210",
        "email": "ravi@example.com",
        "gender": "Male",
        "blood_group": "O+",
        "designation": "TF - Physics",
        "patient_type": "University Member",
        "address": "Staff Quarters 4",
        "emergency_contact": "9123456780",
    }
    body.update(overrides)
    return body


def family_member_payload(**overrides):
    body = {
        "name": "Asha Kumar",
        "relation": "Spouse",
        "dob": "1990-04-01",
        "blood_group": "A+",
        "aadhar": next_aadhar(),
        "phone": "9876500000",
        "email": "asha@example.com",
        "gender": "Female",
    }
    body.update(overrides)
    return body


@pytest.fixture(autouse=True)
def _clean_bus():
    yield
    bus.clear()


@pytest.fixture
def make_staff(db):
    """
    Factory: make_staff(role, username=None) -> User with a StaffProfile.
    """
    from opd_core.iam.models import StaffProfile

    User = get_user_model()
    counter = itertools.count(1)

    def _make(role: str, username: str | None = None, password: str = "Pass@12345", email: str = ""):
        username = username or f"{role.lower()}{next(counter)}"
        user = User.objects.create_user(username=username, password=password, email=email)
        StaffProfile.objects.create(user=user, role=role)
        return user

    return _make


@pytest.fixture
def master_user(make_staff):
    return make_staff(ROLE_MASTER, username="master")


@pytest.fixture
def op_user(make_staff):
    return make_staff(ROLE_OP, username="opdesk")


@pytest.fixture
def doctor_user(make_staff):
    return make_staff(ROLE_DOCTOR, username="doctor")


@pytest.fixture
def pharmacy_user(make_staff):
    return make_staff(ROLE_PHARMACY, username="pharmacist")


@pytest.fixture
def lab_user(make_staff):
    return make_staff(ROLE_LAB, username="labtech")


@pytest.fixture
def office_user(make_staff):
    return make_staff(ROLE_OFFICE, username="office")


@pytest.fixture
def api_client_for():
    def _client(user=None):
        c = APIClient()
        if user is not None:
            c.force_authenticate(user=user)
        return c

    return _client


@pytest.fixture
def stock(db, office_user):
    """
    Factory: stock(name, *quantities) -> Medicine, one batch per quantity
    received in the given order.
    """
    from opd_core.pharmacy.services import InventoryService

    def _stock(name: str, *quantities: int):
        batch = None
        for qty in quantities:
            batch = InventoryService.add_stock(actor_user_id=office_user.id, name=name, quantity=qty)
        return batch.medicine

    return _stock


@pytest.fixture
def lab_test(db):
    from opd_core.lab.models import LabTest

    return LabTest.objects.create(name="Complete Blood Count", description="CBC")


@pytest.fixture
def patient(db, op_user):
    from opd_core.patients.services import PatientService

    return PatientService.register_patient(actor_user_id=op_user.id, data=patient_payload()).patient


@pytest.fixture
def visit(patient, op_user):
    from opd_core.visits.services import VisitService

    return VisitService.create_visit(actor_user_id=op_user.id, patient=patient, reason_for_visit="Fever")
