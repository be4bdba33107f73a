# opd_core/iam/filters.py
from __future__ import annotations

import django_filters
from django.contrib.auth import get_user_model

from opd_core.iam.models import StaffRole


class StaffFilter(django_filters.FilterSet):
    role = django_filters.ChoiceFilter(field_name="staff_profile__role", choices=StaffRole.choices)
    username = django_filters.CharFilter(field_name="username", lookup_expr="icontains")

    class Meta:
        model = get_user_model()
        fields = ["role", "username"]
