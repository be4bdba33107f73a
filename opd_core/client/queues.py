# opd_core/client/queues.py
"""
Client-side queue views kept fresh by invalidation topics.

`TopicWatcher.poll()` compares topic versions with the last poll and publishes
each changed topic on a local bus; every `QueueFeed` subscribed to that topic
re-fetches its endpoint.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from opd_core.client.api import ApiClient
from opd_core.client.errors import ApiError, AuthorizationError
from opd_core.common.events import EventBus
from opd_core.notifications import topics

logger = logging.getLogger(__name__)

QUEUE_ENDPOINTS: Dict[str, str] = {
    topics.DOCTOR_QUEUE: "doctor/registered-ops",
    topics.LAB_QUEUE: "lab/queue",
    topics.PHARMACY_QUEUE: "pharmacy/queue",
    topics.PENDING_APPROVALS: "op/pending-approvals",
    topics.STAFF_LIST: "master/staff",
    topics.INVENTORY: "office/medicines",
    topics.LAB_TEST_LIST: "office/lab-tests",
}


class TopicWatcher:
    def __init__(self, client: ApiClient, bus: EventBus) -> None:
        self.client = client
        self.bus = bus
        self._versions: Optional[Dict[str, int]] = None

    def poll(self) -> List[str]:
        """
        Fetch topic versions and publish the ones that moved. The first poll
        only records a baseline.
        """
        versions = self.client.topic_versions()
        previous = self._versions
        self._versions = dict(versions)
        if previous is None:
            return []

        changed = [t for t, v in versions.items() if previous.get(t) != v]
        for topic in changed:
            self.bus.publish(topic)
        return changed


class QueueFeed:
    """
    Rows of one queue endpoint. A failed refresh keeps the last good rows
    and marks the feed stale; a 401 drops them and is re-raised.
    """

    def __init__(self, client: ApiClient, topic: str, bus: EventBus, *, path: str | None = None) -> None:
        self.client = client
        self.topic = topic
        self.path = path or QUEUE_ENDPOINTS[topic]
        self.rows: List[Any] = []
        self.stale = False
        self.error: Optional[ApiError] = None
        self._unsubscribe = bus.subscribe(topic, self._on_topic)
        self._remove_teardown = client.session.on_teardown(self._on_teardown)

    def refresh(self) -> List[Any]:
        try:
            rows = self.client.get(self.path)
        except AuthorizationError as e:
            if e.status_code != 401:
                return self._keep_stale(e)
            self._drop()
            raise
        except ApiError as e:
            return self._keep_stale(e)

        self.rows = list(rows or [])
        self.stale = False
        self.error = None
        return self.rows

    def _keep_stale(self, e: ApiError) -> List[Any]:
        logger.warning("Refreshing %s failed, keeping %d stale row(s): %s", self.path, len(self.rows), e)
        self.stale = True
        self.error = e
        return self.rows

    def _drop(self) -> None:
        self.rows = []
        self.stale = False
        self.error = None

    def _on_topic(self, topic: str) -> None:
        self.refresh()

    def _on_teardown(self, reason: str) -> None:
        logger.info("Dropping %s rows: session ended (%s)", self.path, reason)
        self._drop()

    def close(self) -> None:
        self._unsubscribe()
        self._remove_teardown()
