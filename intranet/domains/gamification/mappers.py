"""Model to DTO mappers for gamification."""

from __future__ import annotations

from typing import Optional

from intranet.domains.gamification.models import ActivityEvent, GamificationProfile
from intranet.domains.gamification.schemas import ActivityResponse, ProfileResponse


def map_profile(profile: GamificationProfile, rank: Optional[int] = None) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        display_name=profile.display_name,
        sector=profile.sector,
        avatar_url=profile.avatar_url,
        total_points=profile.total_points,
        level=profile.level,
        streak=profile.streak,
        badges=list(profile.badges or []),
        activity_count=profile.activity_count,
        last_activity_at=profile.last_activity_at,
        rank=rank,
    )


def map_activity(event: ActivityEvent) -> ActivityResponse:
    return ActivityResponse(
        id=event.id,
        user_id=event.user_id,
        user_name=event.user_name,
        category=event.category,
        description=event.description,
        points=event.points,
        occurred_at=event.occurred_at,
        metadata=event.metadata_ or {},
    )
