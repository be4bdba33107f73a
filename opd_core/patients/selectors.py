# opd_core/patients/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from opd_core.common.errors import NotFound
from opd_core.patients.models import Patient, PendingRegistration


def get_patient_by_op_number(*, op_number: str) -> Patient:
    try:
        return Patient.objects.select_related("primary").get(op_number__iexact=(op_number or "").strip())
    except Patient.DoesNotExist:
        raise NotFound(f"No patient with OP number '{op_number}'.")


def family_of(patient: Patient) -> QuerySet[Patient]:
    return Patient.objects.filter(primary=patient).order_by("id")


def pending_registrations() -> QuerySet[PendingRegistration]:
    """Unapproved submissions, oldest first."""
    return (
        PendingRegistration.objects.filter(approved_at__isnull=True)
        .prefetch_related("family_members")
        .order_by("submitted_at", "id")
    )


def get_pending_registration(*, aadhar: str) -> PendingRegistration:
    pending = pending_registrations().filter(aadhar=aadhar).first()
    if pending is None:
        raise NotFound("Pending registration not found or already approved.")
    return pending
