"""Map Booking rows to API payloads."""

from __future__ import annotations

from intranet.domains.reservations.models.booking import Booking
from intranet.domains.reservations.schemas import BookingResponse
from intranet.domains.rooms.catalog import get_room


def booking_to_response(booking: Booking) -> BookingResponse:
    room = get_room(booking.room)
    return BookingResponse(
        id=booking.id,
        room=booking.room,
        room_name=room.name if room else booking.room,
        title=booking.title,
        start=booking.start_time,
        end=booking.end_time,
        owner_name=booking.owner_name,
        owner_email=booking.owner_email,
        external_ref=booking.external_ref,
        duration_minutes=booking.duration_minutes,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def booking_to_dict(booking: Booking) -> dict:
    return booking_to_response(booking).model_dump(mode="json")


def conflict_detail(booking: Booking) -> dict:
    """Colliding interval only; titles and owners stay out of conflict errors."""
    return {
        "id": booking.id,
        "room": booking.room,
        "start": booking.start_time.isoformat(),
        "end": booking.end_time.isoformat(),
    }
