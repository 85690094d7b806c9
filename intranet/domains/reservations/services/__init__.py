"""Reservation services."""

from intranet.domains.reservations.services.booking_service import (
    create_booking,
    delete_booking,
    get_booking,
    list_bookings,
    normalize_datetime,
    update_booking,
)

__all__ = [
    "create_booking",
    "delete_booking",
    "get_booking",
    "list_bookings",
    "normalize_datetime",
    "update_booking",
]
