"""User service layer."""

from __future__ import annotations

from typing import Optional

from intranet.core.auth.principal import principal_from_user
from intranet.core.users.models import User
from intranet.core.users.schemas import UserUpdateRequest
from intranet.domains.gamification.services import ensure_profile
from intranet.extensions import db


def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, int(user_id))


def update_user(user: User, payload: UserUpdateRequest) -> User:
    """Apply profile edits and mirror them onto the gamification profile."""
    if payload.full_name is not None:
        user.full_name = payload.full_name.strip() or None
    if payload.sector is not None:
        user.sector = payload.sector.strip() or "Geral"
    if payload.avatar_url is not None:
        user.avatar_url = payload.avatar_url.strip() or None
    db.session.commit()
    ensure_profile(principal_from_user(user))
    return user
