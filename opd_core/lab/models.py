# opd_core/lab/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

from opd_core.common.models import TimeStampedModel
from opd_core.visits.models import Visit


class LabTest(TimeStampedModel):
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True, default="")

    class Meta:
        db_table = "lab_lab_test"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class OrderedLabTest(models.Model):
    """
    Visit <-> lab test order. Pending until `report_url` is set.
    """
    visit = models.ForeignKey(Visit, on_delete=models.PROTECT, related_name="ordered_lab_tests")
    lab_test = models.ForeignKey(LabTest, on_delete=models.PROTECT, related_name="orders")

    ordered_at = models.DateTimeField(default=timezone.now, db_index=True)
    ordered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="ordered_lab_tests",
        null=True,
        blank=True,
    )

    report_url = models.URLField(max_length=1024, null=True, blank=True)
    report_uploaded_at = models.DateTimeField(null=True, blank=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="uploaded_lab_reports",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "lab_ordered_lab_test"
        ordering = ["ordered_at", "id"]
        indexes = [
            models.Index(fields=["visit", "report_url"]),
        ]

    @property
    def is_pending(self) -> bool:
        return not self.report_url

    def __str__(self) -> str:
        return f"{self.lab_test_id} for visit {self.visit_id}"
