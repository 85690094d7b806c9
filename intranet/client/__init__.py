"""Offline-capable booking client for the portal API."""

from intranet.client.local_store import LocalStore
from intranet.client.scheduler import BookingRecord, ReconcileResult, ReservationScheduler
from intranet.client.settings import ClientSettings
from intranet.client.transport import HttpTransport

__all__ = [
    "BookingRecord",
    "ClientSettings",
    "HttpTransport",
    "LocalStore",
    "ReconcileResult",
    "ReservationScheduler",
]
