# opd_core/pharmacy/selectors.py
from __future__ import annotations

from typing import Iterable

from django.db.models import IntegerField, Prefetch, QuerySet, Sum, Value
from django.db.models.functions import Coalesce

from opd_core.pharmacy.models import Medicine, MedicineBatch, PrescribedMedicine


def _total_stock_expr():
    return Coalesce(Sum("batches__quantity_remaining"), Value(0), output_field=IntegerField())


def list_medicines() -> QuerySet[Medicine]:
    """Catalogue with `total_stock` annotated and batches prefetched (oldest first)."""
    return (
        Medicine.objects.annotate(total_stock=_total_stock_expr())
        .prefetch_related(Prefetch("batches", queryset=MedicineBatch.objects.order_by("received_at", "id")))
        .order_by("name")
    )


def total_stock(medicine_id: int) -> int:
    agg = MedicineBatch.objects.filter(medicine_id=medicine_id).aggregate(total=Sum("quantity_remaining"))
    return int(agg["total"] or 0)


def total_stock_by_medicine(medicine_ids: Iterable[int]) -> dict[int, int]:
    ids = list(medicine_ids)
    totals = dict.fromkeys(ids, 0)
    rows = (
        MedicineBatch.objects.filter(medicine_id__in=ids)
        .values("medicine_id")
        .annotate(total=Sum("quantity_remaining"))
    )
    for row in rows:
        totals[row["medicine_id"]] = int(row["total"] or 0)
    return totals


def pending_lines(*, visit_id) -> QuerySet[PrescribedMedicine]:
    return (
        PrescribedMedicine.objects.filter(visit_id=visit_id, dispensed=False)
        .select_related("medicine")
        .order_by("id")
    )


def has_pending_lines(*, visit_id) -> bool:
    return PrescribedMedicine.objects.filter(visit_id=visit_id, dispensed=False).exists()
