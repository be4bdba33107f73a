# opd_core/office/reports.py
"""
Daily activity counts for the office dashboard: [{date, count}] oldest first.
"""
from __future__ import annotations

from datetime import date, timedelta

from django.db.models import Count, QuerySet, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from opd_core.lab.models import OrderedLabTest
from opd_core.pharmacy.models import PrescribedMedicine
from opd_core.visits.models import Visit


def _since(days: int | None) -> date | None:
    if not days:
        return None
    return timezone.localdate() - timedelta(days=days - 1)


def _daily(qs: QuerySet, *, field: str, value, days: int | None) -> list[dict]:
    start = _since(days)
    if start is not None:
        qs = qs.filter(**{f"{field}__date__gte": start})
    rows = (
        qs.annotate(date=TruncDate(field))
        .values("date")
        .annotate(count=value)
        .order_by("date")
    )
    return [{"date": r["date"], "count": int(r["count"] or 0)} for r in rows]


def daily_visits(*, days: int | None = None) -> list[dict]:
    return _daily(Visit.objects.all(), field="registered_at", value=Count("id"), days=days)


def daily_medicines(*, days: int | None = None) -> list[dict]:
    """Units dispensed per day."""
    return _daily(
        PrescribedMedicine.objects.filter(dispensed=True, dispensed_at__isnull=False),
        field="dispensed_at",
        value=Sum("quantity"),
        days=days,
    )


def daily_lab_tests(*, days: int | None = None) -> list[dict]:
    return _daily(OrderedLabTest.objects.all(), field="ordered_at", value=Count("id"), days=days)
