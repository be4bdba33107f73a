# opd_core/notifications/selectors.py
from __future__ import annotations

from opd_core.notifications.models import TopicVersion
from opd_core.notifications.topics import ALL_TOPICS


def topic_versions() -> dict[str, int]:
    """Every known topic mapped to its current version (0 if never bumped)."""
    versions = dict.fromkeys(ALL_TOPICS, 0)
    for topic, version in TopicVersion.objects.filter(topic__in=ALL_TOPICS).values_list("topic", "version"):
        versions[topic] = version
    return versions
