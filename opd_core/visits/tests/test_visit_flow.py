# opd_core/visits/tests/test_visit_flow.py
import pytest
from django.core.exceptions import ValidationError

from opd_core.audit.models import AuditEvent
from opd_core.common.errors import ActiveVisitExists
from opd_core.notifications.selectors import topic_versions
from opd_core.pharmacy.models import PrescribedMedicine
from opd_core.queues.projections import doctor_queue, lab_queue, pharmacy_queue
from opd_core.visits.models import Visit, VisitEvent, VisitStatus
from opd_core.visits.services import VisitService

pytestmark = pytest.mark.django_db


def _consult(client, visit_id, **body):
    body.setdefault("diagnosis", "Fever")
    return client.post(f"/api/doctor/complete-consultation/{visit_id}", body, format="json")


def test_create_visit_by_op_number(api_client_for, op_user, patient):
    res = api_client_for(op_user).post(
        "/api/op/create-visit", {"op_number": patient.op_number, "reason_for_visit": "Cough"}, format="json"
    )
    assert res.status_code == 201
    visit = res.json()["visit"]
    assert visit["status"] == VisitStatus.PATIENT_REGISTERED
    assert visit["creator"]["username"] == "opdesk"
    assert [row["id"] for row in doctor_queue()] == [visit["id"]]


def test_create_visit_for_unknown_op_number_is_404(api_client_for, op_user):
    res = api_client_for(op_user).post("/api/op/create-visit", {"op_number": "OP424242"}, format="json")
    assert res.status_code == 404


def test_second_open_visit_is_rejected(visit, op_user):
    with pytest.raises(ActiveVisitExists):
        VisitService.create_visit(actor_user_id=op_user.id, patient=visit.patient)


def test_new_visit_allowed_after_completion(api_client_for, doctor_user, op_user, visit):
    assert _consult(api_client_for(doctor_user), visit.id).status_code == 200
    again = VisitService.create_visit(actor_user_id=op_user.id, patient=visit.patient)
    assert again.status == VisitStatus.PATIENT_REGISTERED


def test_consultation_without_orders_completes_visit(api_client_for, doctor_user, visit):
    res = _consult(api_client_for(doctor_user), visit.id)
    assert res.status_code == 200
    body = res.json()["visit"]
    assert body["status"] == VisitStatus.COMPLETED
    assert body["doctor"]["username"] == "doctor"
    assert body["diagnosis"] == "Fever"


def test_consultation_with_medicines_goes_to_pharmacy(api_client_for, doctor_user, visit, stock):
    med = stock("Paracetamol", 50)
    res = _consult(api_client_for(doctor_user), visit.id, prescribedMedicines=[{"id": med.id, "quantity": 10}])
    assert res.status_code == 200
    assert res.json()["visit"]["status"] == VisitStatus.PHARMACY_PENDING

    assert doctor_queue() == []
    assert [row["id"] for row in pharmacy_queue()] == [visit.id]


def test_consultation_with_lab_order_waits_for_lab(api_client_for, doctor_user, visit, lab_test):
    res = _consult(api_client_for(doctor_user), visit.id, orderedLabTests=[{"id": lab_test.id}])
    assert res.status_code == 200
    assert res.json()["visit"]["status"] == VisitStatus.AWAITING_LAB

    # out of the doctor queue, not in the pharmacy queue until the report is back
    assert doctor_queue() == []
    assert pharmacy_queue() == []
    assert [row["visit_id"] for row in lab_queue()] == [visit.id]


def test_lab_order_with_medicines_holds_medicines_until_review(api_client_for, doctor_user, visit, lab_test, stock):
    med = stock("Cetirizine", 30)
    res = _consult(
        api_client_for(doctor_user),
        visit.id,
        prescribedMedicines=[{"id": med.id, "quantity": 5}],
        orderedLabTests=[{"id": lab_test.id}],
    )
    assert res.json()["visit"]["status"] == VisitStatus.AWAITING_LAB
    assert PrescribedMedicine.objects.filter(visit=visit, dispensed=False).count() == 1
    assert pharmacy_queue() == []


def test_consultation_twice_is_409_and_leaves_state(api_client_for, doctor_user, visit):
    c = api_client_for(doctor_user)
    assert _consult(c, visit.id).status_code == 200

    res = _consult(c, visit.id, diagnosis="Different")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "invalid_transition"

    visit.refresh_from_db()
    assert visit.diagnosis == "Fever"


def test_empty_diagnosis_is_400(api_client_for, doctor_user, visit):
    res = _consult(api_client_for(doctor_user), visit.id, diagnosis="   ")
    assert res.status_code == 400


def test_consultation_rolls_back_on_insufficient_stock(api_client_for, doctor_user, visit, stock, lab_test):
    med = stock("Amoxicillin", 3)
    res = _consult(
        api_client_for(doctor_user),
        visit.id,
        prescribedMedicines=[{"id": med.id, "quantity": 4}],
        orderedLabTests=[{"id": lab_test.id}],
    )
    assert res.status_code == 409
    assert res.json()["error"]["details"]["shortages"][0]["available"] == 3

    visit.refresh_from_db()
    assert visit.status == VisitStatus.PATIENT_REGISTERED
    assert not visit.ordered_lab_tests.exists()


def test_duplicate_medicine_in_prescription_is_409(api_client_for, doctor_user, visit, stock):
    med = stock("Paracetamol", 50)
    res = _consult(
        api_client_for(doctor_user),
        visit.id,
        prescribedMedicines=[{"id": med.id, "quantity": 1}, {"id": med.id, "quantity": 2}],
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "duplicate_prescription"


def test_more_than_one_lab_test_is_rejected(api_client_for, doctor_user, visit, lab_test, settings):
    from opd_core.lab.models import LabTest

    other = LabTest.objects.create(name="Lipid Profile")
    res = _consult(
        api_client_for(doctor_user), visit.id, orderedLabTests=[{"id": lab_test.id}, {"id": other.id}]
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"]["limit"] == settings.OPD["MAX_LAB_TESTS_PER_VISIT"]


def test_transition_writes_event_audit_and_topics(api_client_for, doctor_user, visit, lab_test):
    before = topic_versions()
    _consult(api_client_for(doctor_user), visit.id, orderedLabTests=[{"id": lab_test.id}])

    after = topic_versions()
    assert after["doctorQueueUpdate"] == before["doctorQueueUpdate"] + 1
    assert after["labQueueUpdate"] == before["labQueueUpdate"] + 1
    assert after["pharmacyQueueUpdate"] == before["pharmacyQueueUpdate"]

    event = VisitEvent.objects.get(visit=visit, code="CONSULTATION_COMPLETED")
    assert (event.from_status, event.to_status) == (VisitStatus.PATIENT_REGISTERED, VisitStatus.AWAITING_LAB)
    assert AuditEvent.objects.filter(event_code="visit.consultation_completed", entity_id=str(visit.id)).exists()


def test_visit_events_are_immutable(visit):
    event = VisitEvent.objects.get(visit=visit, code="VISIT_REGISTERED")
    event.title = "changed"
    with pytest.raises(ValidationError):
        event.save()
    with pytest.raises(ValidationError):
        event.delete()


def test_timeline_lists_events_in_order(api_client_for, doctor_user, visit):
    _consult(api_client_for(doctor_user), visit.id)
    res = api_client_for(doctor_user).get(f"/api/visits/{visit.id}/timeline")
    assert res.status_code == 200
    assert [e["code"] for e in res.json()["events"]] == ["VISIT_REGISTERED", "CONSULTATION_COMPLETED"]


def test_patient_history(api_client_for, doctor_user, visit, stock):
    med = stock("Paracetamol", 50)
    _consult(api_client_for(doctor_user), visit.id, prescribedMedicines=[{"id": med.id, "quantity": 2}])

    res = api_client_for(doctor_user).get(f"/api/doctor/patient-history/{visit.patient_id}")
    assert res.status_code == 200
    visits = res.json()["visits"]
    assert visits[0]["medicines"][0]["name"] == "Paracetamol"
    assert visits[0]["medicines"][0]["dispensed"] is False
