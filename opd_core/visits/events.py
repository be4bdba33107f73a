# opd_core/visits/events.py
from __future__ import annotations

from typing import Any, Dict, Optional

from django.utils.timezone import now

from opd_core.visits.models import VisitEvent


def emit_event(
    *,
    visit_id,
    event_key: str,
    code: str,
    title: str = "",
    from_status: str = "",
    to_status: str = "",
    actor_user_id: int | None = None,
    timestamp=None,
    meta: Optional[Dict[str, Any]] = None,
) -> VisitEvent:
    """
    Idempotent event write inside the caller's transaction.
    A rollback removes the event with the state change it describes.
    """
    if timestamp is None:
        timestamp = now()
    if meta is None:
        meta = {}

    event, _ = VisitEvent.objects.get_or_create(
        event_key=event_key,
        defaults={
            "visit_id": visit_id,
            "code": code,
            "title": title,
            "from_status": from_status or "",
            "to_status": to_status or "",
            "actor_user_id": actor_user_id,
            "timestamp": timestamp,
            "meta": meta,
        },
    )
    return event
