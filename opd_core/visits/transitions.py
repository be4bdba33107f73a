# opd_core/visits/transitions.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from django.db import transaction
from django.utils import timezone

from opd_core.audit.services import AuditService
from opd_core.common.errors import NotFound
from opd_core.notifications.services import notify
from opd_core.visits.events import emit_event
from opd_core.visits.models import Visit
from opd_core.visits.workflow import assert_transition, topics_for_transition

logger = logging.getLogger(__name__)


def lock_visit(visit_id) -> Visit:
    """Row-lock a visit for the rest of the current transaction."""
    try:
        return Visit.objects.select_for_update().get(id=visit_id)
    except (Visit.DoesNotExist, ValueError, TypeError):
        raise NotFound("Visit not found.")


@transaction.atomic
def transition(
    visit: Visit,
    *,
    to_status: str,
    action: str,
    actor_user_id: int | None,
    title: str = "",
    changes: Optional[Dict[str, Any]] = None,
    meta: Optional[Dict[str, Any]] = None,
    extra_topics: Iterable[str] = (),
) -> Visit:
    """
    Move a locked visit to `to_status`.

    Writes the status (plus `changes`), the timeline event and the audit row,
    and bumps the queue topics of both the old and the new status.
    """
    from_status = visit.status
    assert_transition(from_status, to_status, action=action)

    ts = timezone.now()
    changes = dict(changes or {})
    for field, value in changes.items():
        setattr(visit, field, value)
    visit.status = to_status
    visit.save(update_fields=["status", "updated_at", *changes.keys()])

    code = action.upper()
    emit_event(
        visit_id=visit.id,
        event_key=f"{code}:{visit.id}:{to_status}",
        code=code,
        title=title,
        from_status=from_status,
        to_status=to_status,
        actor_user_id=actor_user_id,
        timestamp=ts,
        meta=meta or {},
    )

    AuditService.log(
        event_code=f"visit.{action}",
        entity_type="Visit",
        entity_id=visit.id,
        actor_user_id=actor_user_id,
        metadata={"from_status": from_status, "to_status": to_status, **(meta or {})},
    )

    notify(*topics_for_transition(from_status, to_status), *extra_topics)
    logger.info("Visit %s: %s -> %s (%s)", visit.id, from_status, to_status, action)
    return visit
