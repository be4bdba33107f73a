# opd_core/pharmacy/models.py
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from opd_core.common.models import TimeStampedModel
from opd_core.visits.models import Visit


class Medicine(TimeStampedModel):
    name = models.CharField(max_length=255, unique=True)

    class Meta:
        db_table = "pharmacy_medicine"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class MedicineBatch(models.Model):
    """
    One stock-in. Dispensing drains batches oldest `received_at` first.
    """
    medicine = models.ForeignKey(Medicine, on_delete=models.PROTECT, related_name="batches")
    supplier_info = models.CharField(max_length=255, blank=True, default="")

    quantity_received = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    quantity_remaining = models.PositiveIntegerField()

    received_at = models.DateTimeField(default=timezone.now, db_index=True)
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="medicine_batches",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "pharmacy_medicine_batch"
        ordering = ["received_at", "id"]
        indexes = [
            models.Index(fields=["medicine", "received_at", "id"]),
        ]

    def __str__(self) -> str:
        return f"{self.medicine_id}: {self.quantity_remaining}/{self.quantity_received}"


class PrescribedMedicine(models.Model):
    """
    Visit <-> medicine line. Frozen once dispensed.
    """
    visit = models.ForeignKey(Visit, on_delete=models.PROTECT, related_name="prescribed_medicines")
    medicine = models.ForeignKey(Medicine, on_delete=models.PROTECT, related_name="prescriptions")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    dispensed = models.BooleanField(default=False, db_index=True)
    dispensed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="dispensed_medicines",
        null=True,
        blank=True,
    )
    dispensed_at = models.DateTimeField(null=True, blank=True, db_index=True)

    prescribed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "pharmacy_prescribed_medicine"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["visit", "medicine"], name="uq_prescription_visit_medicine"),
        ]

    def __str__(self) -> str:
        return f"{self.medicine_id} x{self.quantity} (visit {self.visit_id})"

    def _stored_dispensed(self) -> bool:
        if self._state.adding or self.pk is None:
            return False
        return PrescribedMedicine.objects.filter(pk=self.pk, dispensed=True).exists()

    def save(self, *args, **kwargs):
        if self._stored_dispensed():
            raise ValidationError("Dispensed medicine lines are immutable.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self._stored_dispensed():
            raise ValidationError("Dispensed medicine lines cannot be deleted.")
        return super().delete(*args, **kwargs)
