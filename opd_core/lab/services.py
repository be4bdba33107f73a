# opd_core/lab/services.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from opd_core.audit.services import AuditService
from opd_core.common.errors import AlreadyExists, NotFound, ReportAlreadyUploaded, ValidationFailed
from opd_core.lab.models import LabTest, OrderedLabTest
from opd_core.lab.selectors import has_pending_orders
from opd_core.notifications import topics
from opd_core.notifications.services import notify
from opd_core.visits.models import Visit, VisitStatus
from opd_core.visits.transitions import lock_visit, transition
from opd_core.visits.workflow import STATUS_PRESERVING_ACTIONS, assert_status

logger = logging.getLogger(__name__)


class LabCatalogService:
    @staticmethod
    @transaction.atomic
    def add_lab_test(*, actor_user_id: int | None, name: str, description: str = "") -> LabTest:
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Lab test name is required.", details={"name": name})
        if LabTest.objects.filter(name__iexact=name).exists():
            raise AlreadyExists(f"Lab test '{name}' already exists.")

        try:
            with transaction.atomic():
                lab_test = LabTest.objects.create(name=name, description=(description or "").strip())
        except IntegrityError:
            raise AlreadyExists(f"Lab test '{name}' already exists.")

        AuditService.log(
            event_code="lab.test_added",
            entity_type="LabTest",
            entity_id=lab_test.id,
            actor_user_id=actor_user_id,
            metadata={"name": name},
        )
        notify(topics.LAB_TEST_LIST)
        return lab_test


class LabOrderService:
    @staticmethod
    @transaction.atomic
    def order_tests(
        *,
        visit: Visit,
        tests: Iterable[Mapping[str, Any]],
        actor_user_id: int | None,
    ) -> list[OrderedLabTest]:
        """Attach lab test orders to a (locked) visit."""
        ids: list[int] = []
        for item in tests or []:
            try:
                test_id = int(item["id"])
            except (KeyError, TypeError, ValueError):
                raise ValidationFailed("Each ordered lab test needs a valid id.", details={"item": dict(item)})
            if test_id in ids:
                raise ValidationFailed("The same lab test was ordered twice.", details={"lab_test_id": test_id})
            ids.append(test_id)

        if not ids:
            return []

        limit = int(settings.OPD["MAX_LAB_TESTS_PER_VISIT"])
        existing = OrderedLabTest.objects.filter(visit=visit).count()
        if existing + len(ids) > limit:
            raise ValidationFailed(
                f"At most {limit} lab test(s) can be ordered per visit.",
                details={"limit": limit, "requested": len(ids), "existing": existing},
            )

        found = LabTest.objects.in_bulk(ids)
        missing = [i for i in ids if i not in found]
        if missing:
            raise ValidationFailed("Unknown lab test id(s).", details={"lab_test_ids": missing})

        now = timezone.now()
        orders = [
            OrderedLabTest.objects.create(visit=visit, lab_test_id=i, ordered_at=now, ordered_by_id=actor_user_id)
            for i in ids
        ]

        AuditService.log(
            event_code="visit.lab_tests_ordered",
            entity_type="Visit",
            entity_id=visit.id,
            actor_user_id=actor_user_id,
            metadata={"lab_test_ids": ids},
        )
        return orders


class LabReportService:
    @staticmethod
    @transaction.atomic
    def upload_report(*, ordered_lab_test_id, report_url: str, actor_user_id: int | None) -> OrderedLabTest:
        """
        Record a report URL. The last pending report of a visit moves it to
        LAB_REPORTS_SUBMITTED (back to the doctor).
        """
        report_url = (report_url or "").strip()
        if not report_url:
            raise ValidationFailed("report_url is required.", details={"report_url": report_url})

        try:
            visit_id = OrderedLabTest.objects.values_list("visit_id", flat=True).get(id=ordered_lab_test_id)
        except (OrderedLabTest.DoesNotExist, ValueError, TypeError):
            raise NotFound("Ordered lab test not found.")

        # Visit first, then the order: same lock order as every other visit write.
        visit = lock_visit(visit_id)
        order = OrderedLabTest.objects.select_for_update().get(id=ordered_lab_test_id)

        if not order.is_pending:
            raise ReportAlreadyUploaded(details={"ordered_lab_test_id": order.id})
        assert_status(visit.status, STATUS_PRESERVING_ACTIONS["upload_report"], action="upload_report")

        now = timezone.now()
        order.report_url = report_url
        order.report_uploaded_at = now
        order.uploaded_by_id = actor_user_id
        order.save(update_fields=["report_url", "report_uploaded_at", "uploaded_by"])

        AuditService.log(
            event_code="lab.report_uploaded",
            entity_type="OrderedLabTest",
            entity_id=order.id,
            actor_user_id=actor_user_id,
            metadata={"visit_id": visit.id, "report_url": report_url},
        )

        if has_pending_orders(visit_id=visit.id):
            notify(topics.LAB_QUEUE)
            logger.info("Report uploaded for order %s; visit %s still awaiting lab", order.id, visit.id)
        else:
            transition(
                visit,
                to_status=VisitStatus.LAB_REPORTS_SUBMITTED,
                action="lab_reports_submitted",
                actor_user_id=actor_user_id,
                title="Lab reports ready",
                changes={"lab_reports_submitted_at": now},
                meta={"ordered_lab_test_id": order.id},
            )
        return order
