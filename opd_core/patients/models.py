# opd_core/patients/models.py
from django.conf import settings
from django.db import models

from opd_core.common.models import TimeStampedModel
from opd_core.common.validators import (
    BLOOD_GROUPS,
    GENDERS,
    MARITAL_STATUSES,
    RELATIONS,
    aadhar_validator,
    choices,
    designation_validator,
    digits_validator,
    phone_validator,
)


class PatientType(models.TextChoices):
    UNIVERSITY = "University Member", "University Member"
    NON_UNIVERSITY = "Non-University Member", "Non-University Member"
    FAMILY = "Family Member", "Family Member"


class PatientIdentity(models.Model):
    """
    Identity and demographic fields shared by patients and pending registrations.
    """
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=10, validators=[phone_validator])
    email = models.EmailField(blank=True, default="")
    gender = models.CharField(max_length=16, choices=choices(GENDERS), blank=True, default="")
    marital_status = models.CharField(max_length=16, choices=choices(MARITAL_STATUSES), blank=True, default="")
    dob = models.DateField(null=True, blank=True)
    blood_group = models.CharField(max_length=4, choices=choices(BLOOD_GROUPS), blank=True, default="")
    guardian = models.CharField(max_length=255, blank=True, default="")

    # "<PREFIX> - <detail>" for employees, "<Relation> of <name>" for dependants
    designation = models.CharField(max_length=255, blank=True, default="", validators=[designation_validator])
    id_number = models.CharField(max_length=64, blank=True, default="")
    date_of_joining = models.DateField(null=True, blank=True)
    duration = models.CharField(max_length=16, blank=True, default="", validators=[digits_validator])

    physical_challenges = models.CharField(max_length=255, blank=True, default="None")
    pre_existing_conditions = models.TextField(blank=True, default="None")
    emergency_contact = models.CharField(max_length=10, blank=True, default="", validators=[digits_validator])
    address = models.TextField(blank=True, default="")

    patient_type = models.CharField(max_length=32, choices=PatientType.choices, default=PatientType.UNIVERSITY)
    is_employee = models.BooleanField(default=False)

    class Meta:
        abstract = True


class Patient(PatientIdentity, TimeStampedModel):
    """
    Approved patient. Never deleted.
    Dependants of an employee carry their own OP number and point at the employee via `primary`.
    """
    op_number = models.CharField(max_length=32, unique=True)
    aadhar = models.CharField(max_length=12, unique=True, validators=[aadhar_validator])

    relation = models.CharField(max_length=16, choices=choices(RELATIONS), blank=True, default="")
    primary = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="family_members",
        null=True,
        blank=True,
    )

    registered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="registered_patients",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "patients_patient"
        indexes = [
            models.Index(fields=["name"]),
            models.Index(fields=["phone"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.op_number})"


class PendingRegistration(PatientIdentity):
    """
    Public self-service submission waiting for OP desk approval.
    Approval promotes it into a Patient; the row is kept for history.
    """
    aadhar = models.CharField(max_length=12, db_index=True, validators=[aadhar_validator])

    submitted_at = models.DateTimeField(auto_now_add=True, db_index=True)
    approved_at = models.DateTimeField(null=True, blank=True, db_index=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="approved_registrations",
        null=True,
        blank=True,
    )
    patient = models.OneToOneField(
        Patient,
        on_delete=models.SET_NULL,
        related_name="pending_registration",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "patients_pending_registration"
        ordering = ["submitted_at", "id"]

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None

    def __str__(self) -> str:
        state = "approved" if self.is_approved else "pending"
        return f"{self.name} ({self.aadhar}, {state})"


class PendingFamilyMember(models.Model):
    registration = models.ForeignKey(
        PendingRegistration,
        on_delete=models.CASCADE,
        related_name="family_members",
    )
    name = models.CharField(max_length=255)
    relation = models.CharField(max_length=16, choices=choices(RELATIONS))
    dob = models.DateField(null=True, blank=True)
    blood_group = models.CharField(max_length=4, choices=choices(BLOOD_GROUPS), blank=True, default="")
    aadhar = models.CharField(max_length=12, validators=[aadhar_validator])
    phone = models.CharField(max_length=10, validators=[phone_validator])
    email = models.EmailField(blank=True, default="")
    gender = models.CharField(max_length=16, choices=choices(GENDERS), blank=True, default="")
    physical_challenges = models.CharField(max_length=255, blank=True, default="None")
    pre_existing_conditions = models.TextField(blank=True, default="None")

    class Meta:
        db_table = "patients_pending_family_member"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.relation})"


class OpNumberSeries(models.Model):
    """
    Row-locked counter behind OP numbers (prefix + zero padded sequence).
    """
    prefix = models.CharField(max_length=16, unique=True)
    padding = models.PositiveSmallIntegerField(default=6)
    next_number = models.PositiveBigIntegerField(default=1)

    class Meta:
        db_table = "patients_op_number_series"

    def __str__(self) -> str:
        return f"{self.prefix}:{self.next_number}"
