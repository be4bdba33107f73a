# opd_core/iam/selectors.py
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models import QuerySet


def list_staff() -> QuerySet:
    User = get_user_model()
    return (
        User.objects.filter(staff_profile__isnull=False)
        .select_related("staff_profile")
        .order_by("id")
    )


def get_staff(*, user_id: int):
    return list_staff().get(id=user_id)
