"""In-process event bus fed by the outbox dispatcher."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from intranet.core.events.event_models import EventRecord

logger = logging.getLogger(__name__)

EventHandler = Callable[[EventRecord], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: EventRecord) -> int:
        """Deliver to every subscriber of the event type; returns handler count."""
        handlers = list(self._subscribers.get(event.event_type, []))
        for handler in handlers:
            handler(event)
        logger.debug("Published %s to %d handler(s)", event.event_type, len(handlers))
        return len(handlers)


# Global singleton
event_bus = EventBus()
