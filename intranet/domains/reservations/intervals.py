"""Half-open interval arithmetic for room bookings.

A booking occupies ``[start, end)``. Two bookings of the same room conflict
when ``not (a.end <= b.start or a.start >= b.end)``; touching boundaries do
not conflict.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Hashable, Iterable, Optional, TypeVar

from intranet.domains.reservations.errors import BookingValidationError

T = TypeVar("T")


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return not (a_end <= b_start or a_start >= b_end)


def validate_interval(start: Any, end: Any) -> None:
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        raise BookingValidationError("start and end must be datetimes", field="start")
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise BookingValidationError("start and end must share timezone awareness", field="end")
    if not start < end:
        raise BookingValidationError("start must be before end", field="end")


def find_conflict(
    existing: Iterable[T],
    room: str,
    start: datetime,
    end: datetime,
    *,
    key: Callable[[T], Hashable],
    fields: Callable[[T], tuple],
    exclude: Optional[Hashable] = None,
) -> Optional[T]:
    """Linear scan for the first item in ``room`` overlapping ``[start, end)``.

    ``fields`` maps an item to ``(room, start, end)``; ``key`` identifies it
    so the booking being edited can be excluded.
    """
    for item in existing:
        if exclude is not None and key(item) == exclude:
            continue
        item_room, item_start, item_end = fields(item)
        if item_room != room:
            continue
        if overlaps(start, end, item_start, item_end):
            return item
    return None
