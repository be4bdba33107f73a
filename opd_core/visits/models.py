# opd_core/visits/models.py

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from opd_core.common.models import TimeStampedModel
from opd_core.patients.models import Patient


class VisitStatus(models.TextChoices):
    PATIENT_REGISTERED = "PATIENT_REGISTERED", "Patient Registered"
    AWAITING_LAB = "AWAITING_LAB", "Awaiting Lab"
    LAB_REPORTS_SUBMITTED = "LAB_REPORTS_SUBMITTED", "Lab Reports Submitted"
    PHARMACY_PENDING = "PHARMACY_PENDING", "Pharmacy Pending"
    COMPLETED = "COMPLETED", "Completed"


class Visit(TimeStampedModel):
    """
    One clinical encounter from OP registration through dispensing.
    `status` is the only routing key for the department queues.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="visits")

    status = models.CharField(
        max_length=32,
        choices=VisitStatus.choices,
        default=VisitStatus.PATIENT_REGISTERED,
        db_index=True,
    )

    reason_for_visit = models.TextField(blank=True, default="")
    diagnosis = models.TextField(blank=True, default="")

    registered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="registered_visits",
        null=True,
        blank=True,
    )
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="consulted_visits",
        null=True,
        blank=True,
    )

    registered_at = models.DateTimeField(default=timezone.now, db_index=True)
    consultation_completed_at = models.DateTimeField(null=True, blank=True)
    lab_reports_submitted_at = models.DateTimeField(null=True, blank=True)
    dispensed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "visits_visit"
        ordering = ["-registered_at", "-id"]
        indexes = [
            models.Index(fields=["status", "registered_at"]),
            models.Index(fields=["patient", "registered_at"]),
        ]
        constraints = [
            # One open visit per patient.
            models.UniqueConstraint(
                fields=["patient"],
                condition=~Q(status=VisitStatus.COMPLETED),
                name="uq_active_visit_per_patient",
            ),
        ]

    def __str__(self) -> str:
        return f"Visit({self.patient_id}, {self.status})"


class VisitEvent(models.Model):
    """
    Immutable history stream for a visit.
    The timeline endpoint reads only from this table.
    """
    visit = models.ForeignKey(Visit, on_delete=models.PROTECT, related_name="events")

    # Stable identity so a retried write is a no-op
    event_key = models.CharField(max_length=128, unique=True)

    code = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=255, blank=True, default="")
    from_status = models.CharField(max_length=32, blank=True, default="")
    to_status = models.CharField(max_length=32, blank=True, default="")

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="visit_events",
        null=True,
        blank=True,
    )

    timestamp = models.DateTimeField(db_index=True)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "visits_event"
        indexes = [
            models.Index(fields=["visit", "timestamp", "id"]),
        ]

    def __str__(self):
        return f"{self.code} @ {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("VisitEvent is immutable and cannot be modified once created.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("VisitEvent is immutable and cannot be deleted.")
