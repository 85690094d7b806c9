"""Outbox staging and the bus adapter used by the dispatcher."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from intranet.core.events.event_bus import EventBus, event_bus
from intranet.core.events.event_models import EventRecord
from intranet.extensions import db
from intranet.portal_platform.outbox.models import OutboxMessage

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_SENDING = "sending"
STATUS_SENT = "sent"
STATUS_RETRY = "retry"
STATUS_FAILED = "failed"


class EventBusAdapter:
    """Deliver outbox messages to the in-process bus, recording each one once."""

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self.bus = bus or event_bus

    def dispatch(self, message: OutboxMessage) -> None:
        record = EventRecord.query.filter_by(outbox_id=message.id).first()
        if record is None:
            record = EventRecord(
                event_type=message.event_type,
                payload=dict(message.payload or {}),
                user_id=message.user_id,
                outbox_id=message.id,
                occurred_at=message.created_at or datetime.utcnow(),
            )
            db.session.add(record)
        else:
            logger.info("Redelivering outbox message %s", message.id)
        record.dispatched_at = datetime.utcnow()
        self.bus.publish(record)


def enqueue(
    event_name: str,
    payload: dict,
    user_id: Optional[int],
    available_at: Optional[datetime] = None,
) -> OutboxMessage:
    """Stage an event; it is only visible to the dispatcher once the caller commits."""
    message = OutboxMessage(
        event_type=event_name,
        payload=payload or {},
        user_id=user_id,
        available_at=available_at or datetime.utcnow(),
        status=STATUS_PENDING,
        attempts=0,
    )
    db.session.add(message)
    return message
