# opd_core/lab/selectors.py
from __future__ import annotations

from django.db.models import Q, QuerySet

from opd_core.lab.models import LabTest, OrderedLabTest

PENDING = Q(report_url__isnull=True) | Q(report_url="")


def list_lab_tests() -> QuerySet[LabTest]:
    return LabTest.objects.order_by("name")


def pending_orders(*, visit_id=None) -> QuerySet[OrderedLabTest]:
    qs = OrderedLabTest.objects.filter(PENDING)
    if visit_id is not None:
        qs = qs.filter(visit_id=visit_id)
    return qs


def has_pending_orders(*, visit_id) -> bool:
    return pending_orders(visit_id=visit_id).exists()
