# opd_core/office/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.common.permissions import OfficePermission
from opd_core.office import reports


def _days_param(request) -> int | None:
    raw = request.query_params.get("days")
    if raw in (None, ""):
        return None
    try:
        days = int(raw)
    except ValueError:
        raise ValidationError({"days": ["Must be a whole number."]})
    if days < 1:
        raise ValidationError({"days": ["Must be at least 1."]})
    return days


DAYS = OpenApiParameter("days", OpenApiTypes.INT, description="Limit to the last N days (today included).")


class _DailyReportView(APIView):
    permission_classes = [OfficePermission]
    report = None

    @extend_schema(parameters=[DAYS], responses={200: OpenApiTypes.OBJECT}, tags=["Office"])
    def get(self, request):
        return Response(type(self).report(days=_days_param(request)))


class DailyVisitsView(_DailyReportView):
    """GET /office/reports/daily-visits"""
    report = staticmethod(reports.daily_visits)


class DailyMedicinesView(_DailyReportView):
    """GET /office/reports/daily-medicines (units dispensed)"""
    report = staticmethod(reports.daily_medicines)


class DailyLabTestsView(_DailyReportView):
    """GET /office/reports/daily-lab-tests"""
    report = staticmethod(reports.daily_lab_tests)
