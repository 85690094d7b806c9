"""Pure scoring rules: points per category, levels, streaks, badges.

Everything here is deterministic and free of I/O so the aggregate can be
recomputed wholesale from the activity log at any time.
"""

from __future__ import annotations

from bisect import bisect_right
from collections import Counter
from datetime import date, timedelta
from typing import Iterable, List, Mapping, Optional, Tuple

PAGE_VISIT = "page_visit"
PROTEIN_EXCHANGE = "protein_exchange"
ROOM_RESERVATION = "room_reservation"
RECEPTION_APPOINTMENT = "reception_appointment"
POST_CREATION = "post_creation"
COMMENT = "comment"
REACTION = "reaction"
EQUIPMENT_REQUEST = "equipment_request"

POINT_TABLE: Mapping[str, int] = {
    PAGE_VISIT: 1,
    PROTEIN_EXCHANGE: 5,
    ROOM_RESERVATION: 8,
    RECEPTION_APPOINTMENT: 6,
    POST_CREATION: 15,
    COMMENT: 3,
    REACTION: 2,
    EQUIPMENT_REQUEST: 4,
}

CATEGORIES: Tuple[str, ...] = tuple(POINT_TABLE)
# Clients may report these themselves; the rest are awarded where the action is stored.
SELF_REPORTED: frozenset = frozenset({PAGE_VISIT})

# Inclusive lower bound of levels 1..10.
LEVEL_THRESHOLDS: Tuple[int, ...] = (0, 100, 300, 600, 1000, 1500, 2200, 3000, 4000, 5500)

# (label, category, minimum count)
ACTIVITY_BADGES: Tuple[Tuple[str, str, int], ...] = (
    ("Comunicador", POST_CREATION, 5),
    ("Organizador", ROOM_RESERVATION, 10),
    ("Gourmet", PROTEIN_EXCHANGE, 15),
    ("Sociável", COMMENT, 20),
    ("Engajado", REACTION, 50),
)
# Point tiers stack: every tier reached is held at once.
POINT_BADGES: Tuple[Tuple[str, int], ...] = (
    ("Ativo", 500),
    ("Veterano", 1000),
    ("Expert", 2000),
    ("Lenda", 3000),
)
STREAK_BADGES: Tuple[Tuple[str, int], ...] = (
    ("Consistente", 7),
    ("Dedicado", 30),
)

BADGE_ORDER: Tuple[str, ...] = tuple(
    [label for label, _, _ in ACTIVITY_BADGES]
    + [label for label, _ in POINT_BADGES]
    + [label for label, _ in STREAK_BADGES]
)


def is_category(value: str) -> bool:
    return value in POINT_TABLE


def is_self_reported(value: str) -> bool:
    return value in SELF_REPORTED


def points_for(category: str) -> int:
    try:
        return POINT_TABLE[category]
    except KeyError:
        raise ValueError("invalid_category") from None


def level_for(total_points: int) -> int:
    """Step function of cumulative points; level 1 below the first threshold."""
    return max(bisect_right(LEVEL_THRESHOLDS, max(total_points, 0)), 1)


def next_streak(streak: int, last_day: Optional[date], today: date) -> int:
    """Day-granularity streak after an activity on ``today``.

    Same day keeps the streak; the following day extends it; the first
    activity ever, or one after a missed day, starts over at 1. Activities
    dated before the last recorded day leave the streak untouched.
    """
    if last_day is None:
        return 1
    if today <= last_day:
        return streak
    if today - last_day == timedelta(days=1):
        return streak + 1
    return 1


def count_categories(categories: Iterable[str]) -> Counter:
    return Counter(categories)


def compute_badges(category_counts: Mapping[str, int], total_points: int, streak: int) -> List[str]:
    """Badge labels earned for the given stats, in ``BADGE_ORDER``."""
    earned: List[str] = []
    for label, category, minimum in ACTIVITY_BADGES:
        if category_counts.get(category, 0) >= minimum:
            earned.append(label)
    for label, minimum in POINT_BADGES:
        if total_points >= minimum:
            earned.append(label)
    for label, minimum in STREAK_BADGES:
        if streak >= minimum:
            earned.append(label)
    return earned
