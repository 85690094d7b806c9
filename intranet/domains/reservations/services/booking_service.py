"""Booking service: conflict-checked writes, owner checks, outbox events."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy import not_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from intranet.core.auth.principal import Principal
from intranet.core.utils.keyed_locks import KeyBusyError, KeyedLocks
from intranet.domains.gamification import rules as gamification_rules
from intranet.domains.gamification.services import record_activity
from intranet.domains.reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingValidationError,
    WriteInProgressError,
)
from intranet.domains.reservations.events import (
    RESERVATIONS_BOOKING_CREATED,
    RESERVATIONS_BOOKING_DELETED,
    RESERVATIONS_BOOKING_UPDATED,
)
from intranet.domains.reservations.intervals import validate_interval
from intranet.domains.reservations.mappers import conflict_detail
from intranet.domains.reservations.models import Booking
from intranet.domains.rooms.catalog import get_room
from intranet.extensions import db
from intranet.portal_platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

# Check-then-insert is atomic per room; a booking id admits one writer at a time.
_room_locks = KeyedLocks()
_booking_locks = KeyedLocks()


def normalize_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Store wall-clock time of the portal timezone, without tzinfo."""
    if value is None or value.tzinfo is None:
        return value
    zone = ZoneInfo(current_app.config.get("PORTAL_TIMEZONE") or "UTC")
    return value.astimezone(zone).replace(tzinfo=None)


def _clean_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise BookingValidationError("title is required", field="title")
    return cleaned


def _check_room(room: Optional[str]) -> str:
    room_id = (room or "").strip()
    if not room_id:
        raise BookingValidationError("room is required", field="room")
    if get_room(room_id) is None:
        raise BookingValidationError(f"unknown room {room_id!r}", field="room")
    return room_id


def _find_overlap(room: str, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> Optional[Booking]:
    query = Booking.query.filter(
        Booking.room == room,
        not_(or_(Booking.end_time <= start, Booking.start_time >= end)),
    )
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    return query.order_by(Booking.start_time, Booking.id).first()


@contextmanager
def _exclusive_write(booking_id: int) -> Iterator[None]:
    try:
        with _booking_locks.try_hold(booking_id):
            yield
    except KeyBusyError:
        raise WriteInProgressError(f"booking {booking_id} has a write in progress") from None


def list_bookings(
    room: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Booking]:
    """Bookings touching the optional ``[start, end)`` window, by start time."""
    query = Booking.query
    if room:
        query = query.filter(Booking.room == room)
    start = normalize_datetime(start)
    end = normalize_datetime(end)
    if start is not None:
        query = query.filter(Booking.end_time > start)
    if end is not None:
        query = query.filter(Booking.start_time < end)
    return query.order_by(Booking.start_time, Booking.id).all()


def get_booking(booking_id: int) -> Optional[Booking]:
    return db.session.get(Booking, booking_id)


def _find_replay(principal: Principal, idempotency_key: Optional[str]) -> Optional[Booking]:
    if not idempotency_key:
        return None
    existing = Booking.query.filter_by(client_ref=idempotency_key).first()
    if existing is None:
        return None
    if not principal.owns(existing.owner_email):
        raise BookingConflictError(conflict_detail(existing))
    return existing


def _award_reservation_points(principal: Principal, booking: Booking) -> None:
    try:
        record_activity(
            principal.id,
            gamification_rules.ROOM_RESERVATION,
            f"Reservou {booking.room}: {booking.title}",
            metadata={"booking_id": booking.id, "room": booking.room},
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not award points for booking %s", booking.id)


def create_booking(
    principal: Principal,
    room: str,
    start: datetime,
    end: datetime,
    title: str,
    external_ref: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> Tuple[Booking, bool]:
    """
    Insert a booking unless it overlaps another one in the same room.

    Returns ``(booking, created)``; a replayed ``idempotency_key`` returns the
    stored booking with ``created=False`` and awards nothing.
    """
    room_id = _check_room(room)
    title_clean = _clean_title(title)
    validate_interval(start, end)
    start = normalize_datetime(start)
    end = normalize_datetime(end)

    with _room_locks.hold(room_id):
        replay = _find_replay(principal, idempotency_key)
        if replay is not None:
            logger.info("Replayed booking %s for key %s", replay.id, idempotency_key)
            return replay, False

        collision = _find_overlap(room_id, start, end)
        if collision is not None:
            raise BookingConflictError(conflict_detail(collision))

        booking = Booking(
            room=room_id,
            title=title_clean,
            start_time=start,
            end_time=end,
            owner_user_id=principal.id,
            owner_email=principal.email,
            owner_name=principal.name,
            external_ref=(external_ref or "").strip() or None,
            client_ref=idempotency_key,
        )
        db.session.add(booking)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            replay = _find_replay(principal, idempotency_key)
            if replay is None:
                raise
            return replay, False

        enqueue_outbox(
            RESERVATIONS_BOOKING_CREATED,
            {
                "booking_id": booking.id,
                "user_id": principal.id,
                "room": booking.room,
                "title": booking.title,
                "start_time": booking.start_time.isoformat(),
                "end_time": booking.end_time.isoformat(),
                "external_ref": booking.external_ref,
                "created_at": booking.created_at.isoformat(),
            },
            user_id=principal.id,
        )
        db.session.commit()

    logger.info("Booking %s created in %s by user %s", booking.id, room_id, principal.id)
    _award_reservation_points(principal, booking)
    return booking, True


def update_booking(
    principal: Principal,
    booking_id: int,
    room: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    title: Optional[str] = None,
) -> Booking:
    with _exclusive_write(booking_id):
        booking = get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"booking {booking_id} not found")
        if not principal.owns(booking.owner_email):
            raise BookingPermissionError("only the owner may change this booking")

        new_room = _check_room(room) if room is not None else booking.room
        new_title = _clean_title(title) if title is not None else booking.title
        new_start = normalize_datetime(start) if start is not None else booking.start_time
        new_end = normalize_datetime(end) if end is not None else booking.end_time
        validate_interval(new_start, new_end)

        with _room_locks.hold(booking.room, new_room):
            collision = _find_overlap(new_room, new_start, new_end, exclude_id=booking.id)
            if collision is not None:
                raise BookingConflictError(conflict_detail(collision))

            changed = [
                name
                for name, old, new in (
                    ("room", booking.room, new_room),
                    ("title", booking.title, new_title),
                    ("start_time", booking.start_time, new_start),
                    ("end_time", booking.end_time, new_end),
                )
                if old != new
            ]
            booking.room = new_room
            booking.title = new_title
            booking.start_time = new_start
            booking.end_time = new_end
            booking.updated_at = datetime.utcnow()

            enqueue_outbox(
                RESERVATIONS_BOOKING_UPDATED,
                {
                    "booking_id": booking.id,
                    "user_id": principal.id,
                    "room": booking.room,
                    "start_time": booking.start_time.isoformat(),
                    "end_time": booking.end_time.isoformat(),
                    "changed_fields": changed,
                    "updated_at": booking.updated_at.isoformat(),
                },
                user_id=principal.id,
            )
            db.session.commit()

    logger.info("Booking %s updated by user %s (%s)", booking_id, principal.id, ", ".join(changed) or "no changes")
    return booking


def delete_booking(principal: Principal, booking_id: int) -> bool:
    """Remove an owned booking; a missing id is a no-op returning False."""
    with _exclusive_write(booking_id):
        booking = get_booking(booking_id)
        if booking is None:
            return False
        if not principal.owns(booking.owner_email):
            raise BookingPermissionError("only the owner may delete this booking")

        with _room_locks.hold(booking.room):
            room_id = booking.room
            db.session.delete(booking)
            enqueue_outbox(
                RESERVATIONS_BOOKING_DELETED,
                {
                    "booking_id": booking_id,
                    "user_id": principal.id,
                    "room": room_id,
                    "deleted_at": datetime.utcnow().isoformat(),
                },
                user_id=principal.id,
            )
            db.session.commit()

    logger.info("Booking %s deleted by user %s", booking_id, principal.id)
    return True
