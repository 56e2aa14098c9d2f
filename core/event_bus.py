"""
Event bus for maintenance domain events.

Synchronous in-process pub/sub. Handlers run immediately in the publisher's
thread, after the publishing transaction committed. Handler errors are
logged and do not reach the publisher.
"""

import logging
from typing import Callable, Dict, List

from core.events import MaintenanceEvent

logger = logging.getLogger(__name__)

Handler = Callable[[MaintenanceEvent], None]


class EventBus:
    """
    Subscribe by event class (or its name), publish by event instance.

    Handlers are called in subscription order.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, event_type: type[MaintenanceEvent] | str, callback: Handler) -> None:
        name = event_type if isinstance(event_type, str) else event_type.__name__
        self._subscribers.setdefault(name, []).append(callback)

    def subscriber_count(self, event_type: type[MaintenanceEvent] | str) -> int:
        name = event_type if isinstance(event_type, str) else event_type.__name__
        return len(self._subscribers.get(name, []))

    def publish(self, event: MaintenanceEvent) -> None:
        event_type = event.__class__.__name__

        for callback in self._subscribers.get(event_type, []):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
