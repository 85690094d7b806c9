"""Transactional outbox models and helpers."""

from intranet.portal_platform.outbox.models import OutboxMessage
from intranet.portal_platform.outbox.services import EventBusAdapter, enqueue

__all__ = ["OutboxMessage", "EventBusAdapter", "enqueue"]
