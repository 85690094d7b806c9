"""Admin dashboard DTOs."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from intranet.domains.gamification.schemas import ProfileResponse


class DashboardCounters(BaseModel):
    active_users: int = 0
    mural_posts: int = 0
    bookings: int = 0
    upcoming_bookings: int = 0
    equipment_requests: int = 0
    pending_equipment_requests: int = 0
    protein_exchanges: int = 0
    reception_appointments: int = 0


class DashboardResponse(BaseModel):
    counters: DashboardCounters
    ranking: List[ProfileResponse] = Field(default_factory=list)
