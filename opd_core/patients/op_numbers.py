# opd_core/patients/op_numbers.py
from __future__ import annotations

from django.conf import settings
from django.db import transaction

from opd_core.patients.models import OpNumberSeries, Patient


def format_op_number(prefix: str, number: int, padding: int) -> str:
    return f"{prefix}{str(number).zfill(padding)}"


@transaction.atomic
def next_op_number(*, prefix: str | None = None, padding: int | None = None) -> str:
    """
    Allocate the next OP number. The series row is locked until the caller's
    transaction ends, so concurrent registrations never share a number.
    """
    cfg = settings.OPD
    prefix = prefix if prefix is not None else cfg["OP_NUMBER_PREFIX"]
    padding = padding if padding is not None else cfg["OP_NUMBER_PADDING"]

    series, _ = OpNumberSeries.objects.get_or_create(prefix=prefix, defaults={"padding": padding})
    series = OpNumberSeries.objects.select_for_update().get(pk=series.pk)

    n = int(series.next_number or 1)
    op_number = format_op_number(prefix, n, int(series.padding or padding))

    # Skip numbers taken by imported/legacy rows.
    while Patient.objects.filter(op_number=op_number).exists():
        n += 1
        op_number = format_op_number(prefix, n, int(series.padding or padding))

    series.next_number = n + 1
    series.save(update_fields=["next_number"])
    return op_number
