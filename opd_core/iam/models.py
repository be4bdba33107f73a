# opd_core/iam/models.py
from django.conf import settings
from django.db import models

from opd_core.common.models import TimeStampedModel
from opd_core.common.permissions import (
    ROLE_DOCTOR,
    ROLE_LAB,
    ROLE_MASTER,
    ROLE_OFFICE,
    ROLE_OP,
    ROLE_PHARMACY,
)
from opd_core.common.validators import phone_validator


class StaffRole(models.TextChoices):
    OP = ROLE_OP, "OP Desk"
    DOCTOR = ROLE_DOCTOR, "Doctor"
    PHARMACY = ROLE_PHARMACY, "Pharmacy"
    LAB = ROLE_LAB, "Lab"
    OFFICE = ROLE_OFFICE, "Office"
    MASTER = ROLE_MASTER, "Master"


class StaffProfile(TimeStampedModel):
    """
    One role per staff account; the role decides which dashboard and endpoints
    the account can reach.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="staff_profile",
    )
    role = models.CharField(max_length=16, choices=StaffRole.choices, default=StaffRole.DOCTOR, db_index=True)
    mobile = models.CharField(max_length=10, blank=True, default="", validators=[phone_validator])

    class Meta:
        db_table = "iam_staff_profile"

    def __str__(self) -> str:
        return f"{self.user} ({self.role})"
