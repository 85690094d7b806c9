"""Typed schemas for user IO."""

from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from intranet.core.users.models import User


class UserUpdateRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    sector: Optional[str] = Field(default=None, max_length=64)
    avatar_url: Optional[str] = Field(default=None, max_length=512)


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    sector: str
    avatar_url: Optional[str] = None
    is_active: bool
    role_codes: List[str] = []

    model_config = ConfigDict(from_attributes=True)


def serialize_user(user: "User") -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        sector=user.sector,
        avatar_url=user.avatar_url,
        is_active=user.is_active,
        role_codes=user.role_codes,
    )
