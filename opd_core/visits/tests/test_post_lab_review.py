# opd_core/visits/tests/test_post_lab_review.py
import pytest

from opd_core.lab.models import OrderedLabTest
from opd_core.notifications.selectors import topic_versions
from opd_core.queues.projections import doctor_queue, pharmacy_queue
from opd_core.visits.models import VisitStatus

pytestmark = pytest.mark.django_db


@pytest.fixture
def reviewed_visit(api_client_for, doctor_user, lab_user, visit, lab_test):
    """A visit whose lab report is back (LAB_REPORTS_SUBMITTED)."""
    api_client_for(doctor_user).post(
        f"/api/doctor/complete-consultation/{visit.id}",
        {"diagnosis": "Fever", "orderedLabTests": [{"id": lab_test.id}]},
        format="json",
    )
    order = OrderedLabTest.objects.get(visit=visit)
    res = api_client_for(lab_user).post(
        f"/api/lab/upload-report/{order.id}", {"report_url": "https://files.example.com/cbc.pdf"}, format="json"
    )
    assert res.status_code == 200
    visit.refresh_from_db()
    return visit


def test_update_diagnosis_replaces_text_and_keeps_status(api_client_for, doctor_user, reviewed_visit):
    res = api_client_for(doctor_user).put(
        f"/api/doctor/update-diagnosis/{reviewed_visit.id}",
        {"diagnosis": "Fever\nCBC: viral"},
        format="json",
    )
    assert res.status_code == 200
    body = res.json()["visit"]
    assert body["diagnosis"] == "Fever\nCBC: viral"
    assert body["status"] == VisitStatus.LAB_REPORTS_SUBMITTED
    assert [row["id"] for row in doctor_queue()] == [reviewed_visit.id]


def test_update_diagnosis_bumps_doctor_queue_topic(api_client_for, doctor_user, reviewed_visit):
    before = topic_versions()["doctorQueueUpdate"]
    api_client_for(doctor_user).put(
        f"/api/doctor/update-diagnosis/{reviewed_visit.id}", {"diagnosis": "Viral fever"}, format="json"
    )
    assert topic_versions()["doctorQueueUpdate"] == before + 1


def test_update_diagnosis_before_lab_is_409(api_client_for, doctor_user, visit):
    res = api_client_for(doctor_user).put(
        f"/api/doctor/update-diagnosis/{visit.id}", {"diagnosis": "x"}, format="json"
    )
    assert res.status_code == 409


def test_add_medicines_sends_visit_to_pharmacy(api_client_for, doctor_user, reviewed_visit, stock):
    med = stock("Paracetamol", 20)
    res = api_client_for(doctor_user).post(
        f"/api/doctor/add-medicines/{reviewed_visit.id}",
        {"prescribedMedicines": [{"id": med.id, "quantity": 6}]},
        format="json",
    )
    assert res.status_code == 200
    assert res.json()["visit"]["status"] == VisitStatus.PHARMACY_PENDING
    assert doctor_queue() == []
    assert [row["id"] for row in pharmacy_queue()] == [reviewed_visit.id]


def test_add_no_medicines_completes_visit(api_client_for, doctor_user, reviewed_visit):
    res = api_client_for(doctor_user).post(
        f"/api/doctor/add-medicines/{reviewed_visit.id}", {"prescribedMedicines": []}, format="json"
    )
    assert res.status_code == 200
    assert res.json()["visit"]["status"] == VisitStatus.COMPLETED


def test_add_medicines_outside_review_is_409(api_client_for, doctor_user, visit):
    res = api_client_for(doctor_user).post(
        f"/api/doctor/add-medicines/{visit.id}", {"prescribedMedicines": []}, format="json"
    )
    assert res.status_code == 409
