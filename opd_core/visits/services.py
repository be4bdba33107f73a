# opd_core/visits/services.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from django.db import IntegrityError, transaction
from django.utils import timezone

from opd_core.audit.services import AuditService
from opd_core.common.errors import ActiveVisitExists, NotFound, ValidationFailed
from opd_core.lab.services import LabOrderService
from opd_core.notifications import topics
from opd_core.notifications.services import notify
from opd_core.patients.models import Patient
from opd_core.pharmacy.selectors import has_pending_lines
from opd_core.pharmacy.services import PrescriptionService
from opd_core.visits.events import emit_event
from opd_core.visits.models import Visit, VisitStatus
from opd_core.visits.transitions import lock_visit, transition
from opd_core.visits.workflow import (
    STATUS_PRESERVING_ACTIONS,
    assert_status,
    route_after_consultation,
    route_after_post_lab_review,
    topics_for_transition,
)

logger = logging.getLogger(__name__)


class VisitService:
    @staticmethod
    @transaction.atomic
    def create_visit(
        *,
        actor_user_id: int | None,
        reason_for_visit: str = "",
        op_number: str | None = None,
        patient: Patient | None = None,
    ) -> Visit:
        """
        Open a visit for an approved patient (by OP number or instance).
        The visit starts in PATIENT_REGISTERED, i.e. in the doctor queue.
        """
        if patient is None:
            op_number = (op_number or "").strip()
            try:
                patient = Patient.objects.select_for_update().get(op_number__iexact=op_number)
            except Patient.DoesNotExist:
                raise NotFound(f"No patient with OP number '{op_number}'.")
        else:
            patient = Patient.objects.select_for_update().get(pk=patient.pk)

        active = Visit.objects.filter(patient=patient).exclude(status=VisitStatus.COMPLETED).first()
        if active is not None:
            raise ActiveVisitExists(
                f"{patient.op_number} already has an open visit ({active.status}).",
                details={"visit_id": active.id, "status": active.status},
            )

        try:
            with transaction.atomic():
                visit = Visit.objects.create(
                    patient=patient,
                    registered_by_id=actor_user_id,
                    reason_for_visit=(reason_for_visit or "").strip(),
                    status=VisitStatus.PATIENT_REGISTERED,
                    registered_at=timezone.now(),
                )
        except IntegrityError:
            raise ActiveVisitExists(f"{patient.op_number} already has an open visit.")

        emit_event(
            visit_id=visit.id,
            event_key=f"VISIT_REGISTERED:{visit.id}",
            code="VISIT_REGISTERED",
            title="Visit registered",
            to_status=visit.status,
            actor_user_id=actor_user_id,
            timestamp=visit.registered_at,
            meta={"op_number": patient.op_number},
        )

        AuditService.log(
            event_code="visit.created",
            entity_type="Visit",
            entity_id=visit.id,
            actor_user_id=actor_user_id,
            metadata={"patient_id": patient.id, "op_number": patient.op_number},
        )
        notify(*topics_for_transition(None, visit.status), topics.REPORTS)
        logger.info("Visit %s opened for %s", visit.id, patient.op_number)
        return visit

    @staticmethod
    @transaction.atomic
    def complete_consultation(
        *,
        visit_id,
        actor_user_id: int | None,
        diagnosis: str,
        prescribed_medicines: Iterable[Mapping[str, Any]] = (),
        ordered_lab_tests: Iterable[Mapping[str, Any]] = (),
    ) -> Visit:
        """
        Record the doctor's consultation and route the visit:
        lab order -> AWAITING_LAB, else medicines -> PHARMACY_PENDING, else COMPLETED.
        """
        diagnosis = (diagnosis or "").strip()
        if not diagnosis:
            raise ValidationFailed("Diagnosis is required.", details={"diagnosis": ["This field is required."]})

        visit = lock_visit(visit_id)
        assert_status(visit.status, {VisitStatus.PATIENT_REGISTERED}, action="complete_consultation")

        lines = PrescriptionService.add_lines(
            visit=visit,
            lines=list(prescribed_medicines or []),
            actor_user_id=actor_user_id,
        )
        orders = LabOrderService.order_tests(
            visit=visit,
            tests=list(ordered_lab_tests or []),
            actor_user_id=actor_user_id,
        )

        to_status = route_after_consultation(
            has_lab_order=bool(orders),
            has_pending_medicines=has_pending_lines(visit_id=visit.id),
        )

        extra = [topics.REPORTS] if orders else []
        return transition(
            visit,
            to_status=to_status,
            action="consultation_completed",
            actor_user_id=actor_user_id,
            title="Consultation completed",
            changes={
                "diagnosis": diagnosis,
                "doctor_id": actor_user_id,
                "consultation_completed_at": timezone.now(),
            },
            meta={
                "medicine_line_ids": [line.id for line in lines],
                "ordered_lab_test_ids": [o.id for o in orders],
            },
            extra_topics=extra,
        )

    @staticmethod
    @transaction.atomic
    def update_diagnosis(*, visit_id, actor_user_id: int | None, diagnosis: str) -> Visit:
        """
        Post-lab review: replace the diagnosis text (the client sends the
        previous text with its additions). Status is unchanged.
        """
        diagnosis = (diagnosis or "").strip()
        if not diagnosis:
            raise ValidationFailed("Diagnosis is required.", details={"diagnosis": ["This field is required."]})

        visit = lock_visit(visit_id)
        assert_status(visit.status, STATUS_PRESERVING_ACTIONS["update_diagnosis"], action="update_diagnosis")

        previous = visit.diagnosis
        visit.diagnosis = diagnosis
        visit.save(update_fields=["diagnosis", "updated_at"])

        ts = timezone.now()
        emit_event(
            visit_id=visit.id,
            event_key=f"DIAGNOSIS_UPDATED:{visit.id}:{ts.isoformat()}",
            code="DIAGNOSIS_UPDATED",
            title="Diagnosis updated",
            from_status=visit.status,
            to_status=visit.status,
            actor_user_id=actor_user_id,
            timestamp=ts,
            meta={"previous_length": len(previous or ""), "length": len(diagnosis)},
        )
        AuditService.log(
            event_code="visit.diagnosis_updated",
            entity_type="Visit",
            entity_id=visit.id,
            actor_user_id=actor_user_id,
            metadata={},
        )
        notify(topics.DOCTOR_QUEUE)
        return visit

    @staticmethod
    @transaction.atomic
    def add_post_lab_medicines(
        *,
        visit_id,
        actor_user_id: int | None,
        prescribed_medicines: Iterable[Mapping[str, Any]] = (),
    ) -> Visit:
        """
        Close the post-lab review: add medicines (possibly none) and send the
        visit to the pharmacy, or complete it when nothing is left to dispense.
        """
        visit = lock_visit(visit_id)
        assert_status(visit.status, {VisitStatus.LAB_REPORTS_SUBMITTED}, action="add_post_lab_medicines")

        lines = PrescriptionService.add_lines(
            visit=visit,
            lines=list(prescribed_medicines or []),
            actor_user_id=actor_user_id,
        )
        to_status = route_after_post_lab_review(has_pending_medicines=has_pending_lines(visit_id=visit.id))

        return transition(
            visit,
            to_status=to_status,
            action="post_lab_review_completed",
            actor_user_id=actor_user_id,
            title="Post-lab review completed",
            meta={"medicine_line_ids": [line.id for line in lines]},
        )
