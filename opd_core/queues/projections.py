# opd_core/queues/projections.py
"""
Department queues derived from visit state.

Pure reads: every row here is rebuilt from the tables on each call and no
queue is ever written to directly. Changing what a queue shows means running
a visit transition.
"""
from __future__ import annotations

from django.db.models import Exists, OuterRef, Prefetch

from opd_core.lab.models import OrderedLabTest
from opd_core.lab.selectors import PENDING
from opd_core.patients.selectors import pending_registrations
from opd_core.pharmacy.models import PrescribedMedicine
from opd_core.pharmacy.selectors import total_stock_by_medicine
from opd_core.visits.models import Visit, VisitStatus
from opd_core.visits.workflow import DOCTOR_QUEUE_LABELS, Queue

DOCTOR_STATUSES = (VisitStatus.PATIENT_REGISTERED, VisitStatus.LAB_REPORTS_SUBMITTED)


def _patient_summary(patient) -> dict:
    return {
        "id": patient.id,
        "op_number": patient.op_number,
        "name": patient.name,
        "aadhar": patient.aadhar,
        "phone": patient.phone,
        "gender": patient.gender,
        "dob": patient.dob,
        "blood_group": patient.blood_group,
        "designation": patient.designation,
        "patient_type": patient.patient_type,
    }


def op_approval_queue():
    """Unapproved public registrations, FIFO by submission time."""
    return pending_registrations()


def doctor_queue() -> list[dict]:
    visits = (
        Visit.objects.filter(status__in=DOCTOR_STATUSES)
        .select_related("patient")
        .order_by("registered_at", "id")
    )
    return [
        {
            "id": v.id,
            "patient_id": v.patient_id,
            "status": v.status,
            "label": DOCTOR_QUEUE_LABELS[v.status],
            "registered_at": v.registered_at,
            "reason_for_visit": v.reason_for_visit,
            "diagnosis": v.diagnosis,
            "patient": _patient_summary(v.patient),
        }
        for v in visits
    ]


def lab_queue() -> list[dict]:
    """One row per pending lab order of a visit that is waiting on the lab."""
    orders = (
        OrderedLabTest.objects.filter(PENDING, visit__status=VisitStatus.AWAITING_LAB)
        .select_related("lab_test", "visit", "visit__patient")
        .order_by("ordered_at", "id")
    )
    return [
        {
            "id": o.id,
            "visit_id": o.visit_id,
            "lab_test_id": o.lab_test_id,
            "test_name": o.lab_test.name,
            "ordered_at": o.ordered_at,
            "reason_for_visit": o.visit.reason_for_visit,
            "diagnosis": o.visit.diagnosis,
            "patient": _patient_summary(o.visit.patient),
        }
        for o in orders
    ]


def pharmacy_queue() -> list[dict]:
    """
    Visits ready for dispensing with their undispensed lines, each joined with
    current stock. `can_dispense` is False when any line exceeds stock.
    """
    pending = PrescribedMedicine.objects.filter(dispensed=False)
    visits = list(
        Visit.objects.filter(status=VisitStatus.PHARMACY_PENDING)
        .filter(Exists(pending.filter(visit_id=OuterRef("pk"))))
        .select_related("patient", "doctor")
        .prefetch_related(
            Prefetch(
                "prescribed_medicines",
                queryset=pending.select_related("medicine").order_by("id"),
                to_attr="pending_lines",
            )
        )
        .order_by("consultation_completed_at", "registered_at", "id")
    )

    stock = total_stock_by_medicine({line.medicine_id for v in visits for line in v.pending_lines})

    rows: list[dict] = []
    for v in visits:
        lines = []
        for line in v.pending_lines:
            in_stock = stock.get(line.medicine_id, 0)
            lines.append(
                {
                    "id": line.id,
                    "medicine_id": line.medicine_id,
                    "name": line.medicine.name,
                    "quantity": line.quantity,
                    "total_stock": in_stock,
                    "insufficient_stock": line.quantity > in_stock,
                }
            )
        rows.append(
            {
                "id": v.id,
                "patient_id": v.patient_id,
                "status": v.status,
                "registered_at": v.registered_at,
                "diagnosis": v.diagnosis,
                "doctor": v.doctor.username if v.doctor_id else None,
                "patient": _patient_summary(v.patient),
                "medicines": lines,
                "can_dispense": not any(line["insufficient_stock"] for line in lines),
            }
        )
    return rows


def queue_memberships(visit: Visit) -> set[str]:
    """
    Every department queue whose projection currently contains `visit`.
    Evaluated with the same predicates as the projections above.
    """
    memberships: set[str] = set()
    visit.refresh_from_db(fields=["status"])

    if visit.status in DOCTOR_STATUSES:
        memberships.add(Queue.DOCTOR)

    if (
        visit.status == VisitStatus.AWAITING_LAB
        and OrderedLabTest.objects.filter(PENDING, visit_id=visit.id).exists()
    ):
        memberships.add(Queue.LAB)

    if (
        visit.status == VisitStatus.PHARMACY_PENDING
        and PrescribedMedicine.objects.filter(visit_id=visit.id, dispensed=False).exists()
    ):
        memberships.add(Queue.PHARMACY)

    return memberships

