# opd_core/queues/tests/test_projections.py
import pytest

from opd_core.conftest import patient_payload
from opd_core.lab.services import LabReportService
from opd_core.patients.services import PatientService
from opd_core.pharmacy.services import DispenseService
from opd_core.queues.projections import doctor_queue, lab_queue, pharmacy_queue, queue_memberships
from opd_core.visits.models import VisitStatus
from opd_core.visits.services import VisitService
from opd_core.visits.workflow import Queue, queue_for_status

pytestmark = pytest.mark.django_db


def _assert_single_queue(visit):
    visit.refresh_from_db()
    memberships = queue_memberships(visit)
    if visit.status == VisitStatus.COMPLETED:
        assert memberships == set()
    else:
        assert memberships == {queue_for_status(visit.status)}


def test_visit_is_in_exactly_one_queue_along_the_lab_path(visit, doctor_user, lab_user, pharmacy_user, lab_test, stock):
    med = stock("Paracetamol", 10)
    _assert_single_queue(visit)

    VisitService.complete_consultation(
        visit_id=visit.id, actor_user_id=doctor_user.id, diagnosis="Fever", ordered_lab_tests=[{"id": lab_test.id}]
    )
    _assert_single_queue(visit)
    assert queue_memberships(visit) == {Queue.LAB}

    order = visit.ordered_lab_tests.get()
    LabReportService.upload_report(
        ordered_lab_test_id=order.id, report_url="https://files.example.com/r.pdf", actor_user_id=lab_user.id
    )
    _assert_single_queue(visit)
    assert queue_memberships(visit) == {Queue.DOCTOR}

    VisitService.add_post_lab_medicines(
        visit_id=visit.id, actor_user_id=doctor_user.id, prescribed_medicines=[{"id": med.id, "quantity": 3}]
    )
    _assert_single_queue(visit)
    assert queue_memberships(visit) == {Queue.PHARMACY}

    DispenseService.issue_medicines(visit_id=visit.id, actor_user_id=pharmacy_user.id)
    _assert_single_queue(visit)
    assert visit.status == VisitStatus.COMPLETED


def test_doctor_queue_is_oldest_first_with_labels(op_user):
    first = PatientService.register_patient(
        actor_user_id=op_user.id, data=patient_payload(name="A"), reason_for_visit="x"
    ).visit
    second = PatientService.register_patient(
        actor_user_id=op_user.id, data=patient_payload(name="B"), reason_for_visit="y"
    ).visit

    rows = doctor_queue()
    assert [r["id"] for r in rows] == [first.id, second.id]
    assert {r["label"] for r in rows} == {"New Patient"}
    assert rows[0]["patient"]["name"] == "A"


def test_completed_visits_appear_nowhere(visit, doctor_user):
    VisitService.complete_consultation(visit_id=visit.id, actor_user_id=doctor_user.id, diagnosis="Cold")
    assert doctor_queue() == []
    assert lab_queue() == []
    assert pharmacy_queue() == []
