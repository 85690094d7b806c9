"""Reservations domain event catalog."""

from __future__ import annotations

RESERVATIONS_BOOKING_CREATED = "reservations.booking.created"
RESERVATIONS_BOOKING_UPDATED = "reservations.booking.updated"
RESERVATIONS_BOOKING_DELETED = "reservations.booking.deleted"

EVENT_CATALOG = {
    RESERVATIONS_BOOKING_CREATED: {
        "version": "v1",
        "payload": {
            "booking_id": "int",
            "user_id": "int",
            "room": "str",
            "title": "str",
            "start_time": "datetime",
            "end_time": "datetime",
            "external_ref": "str?",
            "created_at": "datetime",
        },
    },
    RESERVATIONS_BOOKING_UPDATED: {
        "version": "v1",
        "payload": {
            "booking_id": "int",
            "user_id": "int",
            "room": "str",
            "start_time": "datetime",
            "end_time": "datetime",
            "changed_fields": "list[str]",
            "updated_at": "datetime",
        },
    },
    RESERVATIONS_BOOKING_DELETED: {
        "version": "v1",
        "payload": {
            "booking_id": "int",
            "user_id": "int",
            "room": "str",
            "deleted_at": "datetime",
        },
    },
}

__all__ = [
    "EVENT_CATALOG",
    "RESERVATIONS_BOOKING_CREATED",
    "RESERVATIONS_BOOKING_UPDATED",
    "RESERVATIONS_BOOKING_DELETED",
]
