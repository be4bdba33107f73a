# opd_core/audit/models.py
from django.conf import settings
from django.db import models


class AuditEvent(models.Model):
    """
    Immutable audit record.
    Every state-changing operation (registration, transitions, stock, staff) lands here.
    """
    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "visit.consultation_completed"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "Visit"
    entity_id = models.CharField(max_length=64, db_index=True)

    # Staff accounts are deactivated, never deleted.
    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_events",
        null=True,
        blank=True,
    )

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["event_code", "occurred_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.event_code} {self.entity_type}:{self.entity_id}"
