# opd_core/visits/selectors.py
from __future__ import annotations

from django.db.models import Prefetch, QuerySet

from opd_core.common.errors import NotFound
from opd_core.lab.models import OrderedLabTest
from opd_core.patients.models import Patient
from opd_core.pharmacy.models import PrescribedMedicine
from opd_core.visits.models import Visit, VisitEvent


class VisitSelectors:
    """
    Read-only queries for visits.
    No .save(), no state mutation here.
    """

    @staticmethod
    def get_visit(*, visit_id) -> Visit:
        try:
            return Visit.objects.select_related("patient").get(id=visit_id)
        except (Visit.DoesNotExist, ValueError, TypeError):
            raise NotFound("Visit not found.")

    @staticmethod
    def visits_with_details(*, patient_id) -> QuerySet[Visit]:
        """Visits newest first, with medicine lines and lab orders preloaded."""
        return (
            Visit.objects.filter(patient_id=patient_id)
            .select_related("doctor", "registered_by")
            .prefetch_related(
                Prefetch(
                    "prescribed_medicines",
                    queryset=PrescribedMedicine.objects.select_related("medicine", "dispensed_by").order_by("id"),
                ),
                Prefetch(
                    "ordered_lab_tests",
                    queryset=OrderedLabTest.objects.select_related("lab_test").order_by("ordered_at", "id"),
                ),
            )
            .order_by("-registered_at", "-id")
        )

    @staticmethod
    def patient_history(*, patient_id) -> dict:
        try:
            patient = Patient.objects.get(id=patient_id)
        except (Patient.DoesNotExist, ValueError, TypeError):
            raise NotFound("Patient not found.")
        return {
            "patient": patient,
            "visits": list(VisitSelectors.visits_with_details(patient_id=patient.id)),
        }

    @staticmethod
    def timeline_items(*, visit_id) -> list[dict]:
        events = (
            VisitEvent.objects.filter(visit_id=visit_id)
            .select_related("actor_user")
            .order_by("timestamp", "id")
        )

        items: list[dict] = []
        for e in events:
            items.append(
                {
                    "id": e.id,
                    "code": e.code,
                    "title": e.title or "",
                    "from_status": e.from_status or None,
                    "to_status": e.to_status or None,
                    "actor": e.actor_user.username if e.actor_user_id else None,
                    "at": e.timestamp,
                    "meta": e.meta or {},
                }
            )
        return items
