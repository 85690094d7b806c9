"""Gamification request and response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from intranet.domains.gamification import rules


class ActivityCreate(BaseModel):
    category: str
    description: str = Field(default="", max_length=512)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        value = value.strip()
        if not rules.is_category(value):
            raise ValueError("invalid_category")
        if not rules.is_self_reported(value):
            raise ValueError("category_awarded_by_server")
        return value


class RankingParams(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1, le=100)


class ActivityResponse(BaseModel):
    id: int
    user_id: int
    user_name: str
    category: str
    description: str
    points: int
    occurred_at: datetime
    metadata: Dict[str, Any] = {}


class ProfileResponse(BaseModel):
    user_id: int
    display_name: str
    sector: str
    avatar_url: Optional[str]
    total_points: int
    level: int
    streak: int
    badges: List[str] = []
    activity_count: int
    last_activity_at: Optional[datetime]
    rank: Optional[int] = None


class StatsResponse(BaseModel):
    total_activities: int
    by_category: Dict[str, int]
    profiles: int
