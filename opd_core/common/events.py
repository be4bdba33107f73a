# opd_core/common/events.py
"""
In-process invalidation bus.

Events are topic names only (e.g. "doctorQueueUpdate"). A handler never
receives data: it re-reads the source of truth when its topic fires.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[[str], None]


class EventBus:
    def __init__(self) -> None:
        self._registry: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """
        Register handler for topic. Returns an unsubscribe callable.
        """
        self._registry[topic].append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(topic, handler)

        return _unsubscribe

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        handlers = self._registry.get(topic, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, topic: str) -> int:
        """
        Call every handler of topic. A failing handler is logged and does not
        stop the others. Returns the number of handlers called.
        """
        handlers = list(self._registry.get(topic, []))
        for handler in handlers:
            try:
                handler(topic)
            except Exception:
                logger.exception("Invalidation handler %r failed for topic %s", handler, topic)
        return len(handlers)

    def clear(self) -> None:
        self._registry.clear()


# Process-wide bus used by the server side.
bus = EventBus()


def subscribe(topic: str):
    """
    Decorator to register a handler on the process-wide bus.
    Usage:
        @subscribe("doctorQueueUpdate")
        def handler(topic): ...
    """
    def _decorator(fn: Handler) -> Handler:
        bus.subscribe(topic, fn)
        return fn
    return _decorator


def publish(topic: str) -> int:
    return bus.publish(topic)
