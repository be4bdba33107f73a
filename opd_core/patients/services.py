# opd_core/patients/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from django.db import IntegrityError, transaction
from django.utils import timezone

from opd_core.audit.services import AuditService
from opd_core.common.errors import AlreadyRegistered, NotFound
from opd_core.notifications import topics
from opd_core.notifications.services import notify
from opd_core.patients.models import (
    Patient,
    PatientType,
    PendingFamilyMember,
    PendingRegistration,
)
from opd_core.patients.op_numbers import next_op_number
from opd_core.visits.models import Visit
from opd_core.visits.services import VisitService

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = (
    "name",
    "aadhar",
    "phone",
    "email",
    "gender",
    "marital_status",
    "dob",
    "blood_group",
    "guardian",
    "designation",
    "id_number",
    "date_of_joining",
    "duration",
    "physical_challenges",
    "pre_existing_conditions",
    "emergency_contact",
    "address",
    "patient_type",
    "is_employee",
)

FAMILY_FIELDS = (
    "name",
    "relation",
    "dob",
    "blood_group",
    "aadhar",
    "phone",
    "email",
    "gender",
    "physical_challenges",
    "pre_existing_conditions",
)


@dataclass
class RegistrationResult:
    patient: Patient
    family: list[Patient] = field(default_factory=list)
    visit: Visit | None = None


def _pick(data: Mapping[str, Any], names: Iterable[str]) -> dict[str, Any]:
    return {k: data[k] for k in names if k in data and data[k] is not None}


def _ensure_new_aadhars(primary_aadhar: str, family: list[Mapping[str, Any]], *, pending_exclude=None) -> None:
    """
    Aadhar is the identity key: it must be unique within the submission and
    unused by any patient or any other unapproved submission.
    """
    aadhars = [primary_aadhar] + [m.get("aadhar") for m in family]
    dupes = sorted({a for a in aadhars if aadhars.count(a) > 1})
    if dupes:
        raise AlreadyRegistered(
            "The same Aadhar appears more than once in this registration.",
            details={"aadhar": dupes},
        )

    taken = sorted(Patient.objects.filter(aadhar__in=aadhars).values_list("aadhar", flat=True))
    if taken:
        raise AlreadyRegistered(
            f"Aadhar already registered: {', '.join(taken)}.",
            details={"aadhar": taken},
        )

    pending = PendingRegistration.objects.filter(aadhar__in=aadhars, approved_at__isnull=True)
    if pending_exclude is not None:
        pending = pending.exclude(pk=pending_exclude)
    waiting = sorted(pending.values_list("aadhar", flat=True))
    if waiting:
        raise AlreadyRegistered(
            f"A registration for Aadhar {', '.join(waiting)} is already awaiting approval.",
            details={"aadhar": waiting},
        )


def _create_patient(*, data: Mapping[str, Any], actor_user_id: int | None, **extra) -> Patient:
    try:
        with transaction.atomic():
            return Patient.objects.create(
                op_number=next_op_number(),
                registered_by_id=actor_user_id,
                **_pick(data, IDENTITY_FIELDS),
                **extra,
            )
    except IntegrityError:
        raise AlreadyRegistered(details={"aadhar": [data.get("aadhar")]})


def _create_family(*, primary: Patient, members: list[Mapping[str, Any]], actor_user_id: int | None) -> list[Patient]:
    family: list[Patient] = []
    for member in members:
        relation = member.get("relation", "")
        family.append(
            _create_patient(
                data=_pick(member, FAMILY_FIELDS),
                actor_user_id=actor_user_id,
                relation=relation,
                primary=primary,
                patient_type=PatientType.FAMILY,
                is_employee=False,
                designation=f"{relation} of {primary.name}",
                address=primary.address,
                emergency_contact=primary.emergency_contact,
            )
        )
    return family


class PatientService:
    @staticmethod
    @transaction.atomic
    def register_patient(
        *,
        actor_user_id: int | None,
        data: Mapping[str, Any],
        family_details: Iterable[Mapping[str, Any]] = (),
        reason_for_visit: str = "",
    ) -> RegistrationResult:
        """
        Staff-entered registration: OP numbers are assigned immediately for the
        patient and every family member. A reason for visit also opens a visit.
        """
        family_details = list(family_details or [])
        _ensure_new_aadhars(data["aadhar"], family_details)

        patient = _create_patient(data=data, actor_user_id=actor_user_id)
        family = _create_family(primary=patient, members=family_details, actor_user_id=actor_user_id)

        AuditService.log(
            event_code="patient.registered",
            entity_type="Patient",
            entity_id=patient.id,
            actor_user_id=actor_user_id,
            metadata={"op_number": patient.op_number, "family_op_numbers": [p.op_number for p in family]},
        )
        logger.info("Registered %s with %d family member(s)", patient.op_number, len(family))

        visit = None
        if (reason_for_visit or "").strip():
            visit = VisitService.create_visit(
                actor_user_id=actor_user_id,
                patient=patient,
                reason_for_visit=reason_for_visit,
            )
        return RegistrationResult(patient=patient, family=family, visit=visit)


class RegistrationService:
    @staticmethod
    @transaction.atomic
    def submit_public(
        *,
        data: Mapping[str, Any],
        family_details: Iterable[Mapping[str, Any]] = (),
    ) -> PendingRegistration:
        """Public self-service submission; lands in the OP approval queue."""
        family_details = list(family_details or [])
        _ensure_new_aadhars(data["aadhar"], family_details)

        pending = PendingRegistration.objects.create(**_pick(data, IDENTITY_FIELDS))
        for member in family_details:
            PendingFamilyMember.objects.create(registration=pending, **_pick(member, FAMILY_FIELDS))

        AuditService.log(
            event_code="registration.submitted",
            entity_type="PendingRegistration",
            entity_id=pending.id,
            actor_user_id=None,
            metadata={"aadhar": pending.aadhar, "family_count": len(family_details)},
        )
        notify(topics.PENDING_APPROVALS)
        logger.info("Public registration %s submitted", pending.id)
        return pending

    @staticmethod
    @transaction.atomic
    def approve(*, aadhar: str, actor_user_id: int | None) -> RegistrationResult:
        """
        Promote the unapproved submission for `aadhar` into a Patient (plus family).
        Approved or unknown submissions are reported as not found.
        """
        pending = (
            PendingRegistration.objects.select_for_update()
            .filter(aadhar=aadhar, approved_at__isnull=True)
            .order_by("submitted_at", "id")
            .first()
        )
        if pending is None:
            raise NotFound("Pending registration not found or already approved.")

        members = [
            {name: getattr(m, name) for name in FAMILY_FIELDS}
            for m in pending.family_members.order_by("id")
        ]
        data = {name: getattr(pending, name) for name in IDENTITY_FIELDS}
        _ensure_new_aadhars(pending.aadhar, members, pending_exclude=pending.pk)

        patient = _create_patient(data=data, actor_user_id=actor_user_id)
        family = _create_family(primary=patient, members=members, actor_user_id=actor_user_id)

        pending.approved_at = timezone.now()
        pending.approved_by_id = actor_user_id
        pending.patient = patient
        pending.save(update_fields=["approved_at", "approved_by", "patient"])

        AuditService.log(
            event_code="registration.approved",
            entity_type="PendingRegistration",
            entity_id=pending.id,
            actor_user_id=actor_user_id,
            metadata={"patient_id": patient.id, "op_number": patient.op_number},
        )
        notify(topics.PENDING_APPROVALS)
        logger.info("Registration %s approved as %s", pending.id, patient.op_number)
        return RegistrationResult(patient=patient, family=family)
