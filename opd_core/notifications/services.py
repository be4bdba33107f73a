# opd_core/notifications/services.py
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F

from opd_core.common.events import publish
from opd_core.notifications.models import TopicVersion
from opd_core.notifications.topics import ALL_TOPICS

logger = logging.getLogger(__name__)


def _bump(topic: str) -> None:
    updated = TopicVersion.objects.filter(topic=topic).update(version=F("version") + 1)
    if not updated:
        obj, created = TopicVersion.objects.get_or_create(topic=topic, defaults={"version": 1})
        if not created:
            TopicVersion.objects.filter(pk=obj.pk).update(version=F("version") + 1)


def _publish_all(topics: tuple[str, ...]) -> None:
    for topic in topics:
        publish(topic)


def notify(*topics: str) -> None:
    """
    Signal that the projections behind ``topics`` changed.

    Versions are bumped inside the caller's transaction (rolled back with it);
    in-process subscribers are only woken once the transaction commits.
    """
    unique = tuple(dict.fromkeys(topics))
    unknown = [t for t in unique if t not in ALL_TOPICS]
    if unknown:
        raise ValueError(f"Unknown notification topic(s): {', '.join(unknown)}")

    for topic in unique:
        _bump(topic)

    logger.debug("Queued notifications: %s", ", ".join(unique))
    transaction.on_commit(lambda: _publish_all(unique))
