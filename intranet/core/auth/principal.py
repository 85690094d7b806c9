"""Explicit acting-user value passed into domain services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask_jwt_extended import get_jwt_identity

from intranet.core.users.models import User
from intranet.extensions import db


@dataclass(frozen=True)
class Principal:
    """Already-authenticated identity of the caller."""

    id: int
    name: str
    email: str
    sector: str = "Geral"
    role: str = "user"
    avatar_url: Optional[str] = None

    def owns(self, owner_email: Optional[str]) -> bool:
        return bool(owner_email) and owner_email.strip().lower() == self.email.strip().lower()


def principal_from_user(user: User) -> Principal:
    roles = user.role_codes
    return Principal(
        id=user.id,
        name=user.display_name,
        email=user.email,
        sector=user.sector or "Geral",
        role="admin" if "admin" in roles else "user",
        avatar_url=user.avatar_url,
    )


def current_principal() -> Optional[Principal]:
    """Resolve the JWT identity of the current request into a Principal."""
    identity = get_jwt_identity()
    if identity is None:
        return None
    user = db.session.get(User, int(identity))
    if not user or not user.is_active:
        return None
    return principal_from_user(user)
