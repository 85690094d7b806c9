"""Gamification domain event catalog."""

from __future__ import annotations

GAMIFICATION_ACTIVITY_RECORDED = "gamification.activity.recorded"
GAMIFICATION_LEVEL_REACHED = "gamification.level.reached"
GAMIFICATION_BADGE_EARNED = "gamification.badge.earned"

EVENT_CATALOG = {
    GAMIFICATION_ACTIVITY_RECORDED: {
        "version": "v1",
        "payload": {
            "activity_id": "int",
            "user_id": "int",
            "category": "str",
            "points": "int",
            "total_points": "int",
            "occurred_at": "datetime",
        },
    },
    GAMIFICATION_LEVEL_REACHED: {
        "version": "v1",
        "payload": {"user_id": "int", "level": "int", "previous_level": "int"},
    },
    GAMIFICATION_BADGE_EARNED: {
        "version": "v1",
        "payload": {"user_id": "int", "badge": "str"},
    },
}

__all__ = [
    "EVENT_CATALOG",
    "GAMIFICATION_ACTIVITY_RECORDED",
    "GAMIFICATION_LEVEL_REACHED",
    "GAMIFICATION_BADGE_EARNED",
]
