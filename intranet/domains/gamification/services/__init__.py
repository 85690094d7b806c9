"""Gamification engine: activity log in, derived profile out.

The profile is never incremented in place. Every recorded activity
re-derives points, level, streak and badges from the full activity log of
that user, serialized per user with an in-process lock.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy import and_, func, or_

from intranet.core.auth.principal import Principal, principal_from_user
from intranet.core.users.models import User
from intranet.core.utils.keyed_locks import KeyedLocks
from intranet.domains.gamification import rules
from intranet.domains.gamification.events import (
    GAMIFICATION_ACTIVITY_RECORDED,
    GAMIFICATION_BADGE_EARNED,
    GAMIFICATION_LEVEL_REACHED,
)
from intranet.domains.gamification.models import ActivityEvent, GamificationProfile
from intranet.extensions import db
from intranet.portal_platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

_user_locks = KeyedLocks()


def _portal_zone() -> ZoneInfo:
    return ZoneInfo(current_app.config.get("PORTAL_TIMEZONE") or "UTC")


def _local_day(moment: datetime, zone: ZoneInfo) -> date:
    """Calendar day of a naive-UTC timestamp in the portal timezone."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(zone).date()


def _to_utc_naive(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return datetime.utcnow()
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def streak_from_days(days: Iterable[date]) -> int:
    """Fold ``rules.next_streak`` over the distinct activity days, oldest first."""
    streak = 0
    last_day: Optional[date] = None
    for day in sorted(set(days)):
        streak = rules.next_streak(streak, last_day, day)
        last_day = day
    return streak


def get_profile(user_id: int) -> Optional[GamificationProfile]:
    return GamificationProfile.query.filter_by(user_id=user_id).first()


def ensure_profile(principal: Principal) -> GamificationProfile:
    """Create the profile on first sight, otherwise refresh the display fields."""
    profile = get_profile(principal.id)
    if profile is None:
        profile = GamificationProfile(
            user_id=principal.id,
            display_name=principal.name,
            sector=principal.sector or "Geral",
            avatar_url=principal.avatar_url,
            total_points=0,
            level=1,
            streak=0,
            badges=[],
            activity_count=0,
            last_activity_at=None,
        )
        db.session.add(profile)
        db.session.commit()
        logger.info("Created gamification profile for user %s", principal.id)
        return profile

    changed = False
    for attr, value in (
        ("display_name", principal.name),
        ("sector", principal.sector or "Geral"),
        ("avatar_url", principal.avatar_url),
    ):
        if getattr(profile, attr) != value:
            setattr(profile, attr, value)
            changed = True
    if changed:
        db.session.commit()
    return profile


def _profile_for(user_id: int) -> Optional[GamificationProfile]:
    profile = get_profile(user_id)
    if profile is not None:
        return profile
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return ensure_profile(principal_from_user(user))


def _recompute(profile: GamificationProfile) -> None:
    """Re-derive every aggregate field from the stored activity log."""
    user_id = profile.user_id
    total_points = (
        db.session.query(func.coalesce(func.sum(ActivityEvent.points), 0))
        .filter(ActivityEvent.user_id == user_id)
        .scalar()
    )
    category_counts: Dict[str, int] = dict(
        db.session.query(ActivityEvent.category, func.count(ActivityEvent.id))
        .filter(ActivityEvent.user_id == user_id)
        .group_by(ActivityEvent.category)
        .all()
    )
    moments = [
        row[0]
        for row in db.session.query(ActivityEvent.occurred_at)
        .filter(ActivityEvent.user_id == user_id)
        .all()
    ]
    zone = _portal_zone()

    profile.total_points = int(total_points or 0)
    profile.level = rules.level_for(profile.total_points)
    profile.streak = streak_from_days(_local_day(moment, zone) for moment in moments)
    profile.badges = rules.compute_badges(category_counts, profile.total_points, profile.streak)
    profile.activity_count = sum(category_counts.values())
    profile.last_activity_at = max(moments) if moments else None


def record_activity(
    user_id: int,
    category: str,
    description: str = "",
    metadata: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> Optional[ActivityEvent]:
    """
    Append one activity and recompute the user's profile.

    Unknown or inactive users are logged and skipped (returns None). An
    unknown category raises ValueError("invalid_category").
    """
    points = rules.points_for(category)
    profile = _profile_for(user_id)
    if profile is None:
        logger.warning("Skipping %s activity for unknown user %s", category, user_id)
        return None

    with _user_locks.hold(user_id):
        db.session.refresh(profile)
        previous_level = profile.level
        previous_badges = set(profile.badges or [])

        event = ActivityEvent(
            user_id=user_id,
            user_name=profile.display_name,
            category=category,
            description=(description or "").strip(),
            points=points,
            occurred_at=_to_utc_naive(occurred_at),
            metadata_=metadata or {},
        )
        db.session.add(event)
        db.session.flush()

        _recompute(profile)

        enqueue_outbox(
            GAMIFICATION_ACTIVITY_RECORDED,
            {
                "activity_id": event.id,
                "user_id": user_id,
                "category": category,
                "points": points,
                "total_points": profile.total_points,
                "occurred_at": event.occurred_at.isoformat(),
            },
            user_id=user_id,
        )
        if profile.level > previous_level:
            enqueue_outbox(
                GAMIFICATION_LEVEL_REACHED,
                {"user_id": user_id, "level": profile.level, "previous_level": previous_level},
                user_id=user_id,
            )
        for badge in profile.badges:
            if badge not in previous_badges:
                enqueue_outbox(GAMIFICATION_BADGE_EARNED, {"user_id": user_id, "badge": badge}, user_id=user_id)
        db.session.commit()

    logger.info(
        "Recorded %s (+%s) for user %s; total=%s level=%s",
        category,
        points,
        user_id,
        profile.total_points,
        profile.level,
    )
    return event


def rebuild_profile(user_id: int) -> Optional[GamificationProfile]:
    """Recompute a profile from its log without appending anything."""
    profile = get_profile(user_id)
    if profile is None:
        return None
    with _user_locks.hold(user_id):
        _recompute(profile)
        db.session.commit()
    return profile


def rebuild_all_profiles() -> int:
    count = 0
    for (user_id,) in db.session.query(GamificationProfile.user_id).all():
        rebuild_profile(user_id)
        count += 1
    return count


def list_activities(user_id: int, limit: int = 20) -> List[ActivityEvent]:
    return (
        ActivityEvent.query.filter_by(user_id=user_id)
        .order_by(ActivityEvent.occurred_at.desc(), ActivityEvent.id.desc())
        .limit(limit)
        .all()
    )


def rank(user_id: int) -> int:
    """1-based leaderboard position; ties go to the older profile. 0 when unknown."""
    profile = get_profile(user_id)
    if profile is None:
        return 0
    ahead = GamificationProfile.query.filter(
        or_(
            GamificationProfile.total_points > profile.total_points,
            and_(
                GamificationProfile.total_points == profile.total_points,
                GamificationProfile.id < profile.id,
            ),
        )
    ).count()
    return ahead + 1


def top_users(limit: int = 10) -> List[GamificationProfile]:
    if limit <= 0:
        return []
    return (
        GamificationProfile.query.order_by(
            GamificationProfile.total_points.desc(), GamificationProfile.id.asc()
        )
        .limit(limit)
        .all()
    )


def total_activity_count() -> int:
    return db.session.query(func.count(ActivityEvent.id)).scalar() or 0


def count_by_category(category: str) -> int:
    return (
        db.session.query(func.count(ActivityEvent.id))
        .filter(ActivityEvent.category == category)
        .scalar()
        or 0
    )


def category_breakdown() -> Dict[str, int]:
    """Activity count for every known category, zeros included."""
    counts = dict(
        db.session.query(ActivityEvent.category, func.count(ActivityEvent.id))
        .group_by(ActivityEvent.category)
        .all()
    )
    return {category: int(counts.get(category, 0)) for category in rules.CATEGORIES}


__all__ = [
    "category_breakdown",
    "count_by_category",
    "ensure_profile",
    "get_profile",
    "list_activities",
    "rank",
    "rebuild_all_profiles",
    "rebuild_profile",
    "record_activity",
    "streak_from_days",
    "top_users",
    "total_activity_count",
]
