# opd_core/common/validators.py
"""
Shared field rules for registration and staff forms.

The same validators back the model fields and the API serializers so a rule
cannot drift between layers.
"""
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator

aadhar_validator = RegexValidator(
    regex=r"^[0-9]{12}$",
    message="Aadhar must be exactly 12 digits.",
    code="invalid_aadhar",
)

phone_validator = RegexValidator(
    regex=r"^[0-9]{10}$",
    message="Phone number must be exactly 10 digits.",
    code="invalid_phone",
)

digits_validator = RegexValidator(
    regex=r"^[0-9]*$",
    message="Only digits are allowed.",
    code="invalid_digits",
)

BLOOD_GROUPS = ["O+", "O-", "A+", "A-", "B+", "B-", "AB+", "AB-"]
GENDERS = ["Male", "Female", "Other"]
MARITAL_STATUSES = ["Single", "Married", "Divorced", "Widowed"]
RELATIONS = ["Spouse", "Son", "Daughter", "Father", "Mother"]

# Employee designation prefixes; stored as "<PREFIX> - <detail>".
DESIGNATION_PREFIXES = {
    "TF": "Teaching",
    "NT": "Non-Teaching (Regular)",
    "TS": "Timescale",
    "NMR": "NMR (Hostel/NMR)",
    "AC": "Academic Consultant/Coordinator",
    "OS": "Out Sourcing",
    "CO": "Contract/Consolidated",
    "ST": "Students/Research Scholar (PhD)",
}


def choices(values):
    return [(v, v) for v in values]


def employee_designation_validator(value: str) -> None:
    if not value:
        return
    prefix = value.split(" - ", 1)[0].strip()
    if prefix not in DESIGNATION_PREFIXES:
        raise ValidationError(
            f"Designation must start with one of: {', '.join(DESIGNATION_PREFIXES)}.",
            code="invalid_designation",
        )


def designation_validator(value: str) -> None:
    """Stored designation: an employee one, or "<Relation> of <name>" for dependants."""
    relation, sep, name = (value or "").partition(" of ")
    if sep and relation in RELATIONS and name.strip():
        return
    employee_designation_validator(value)
