"""Roles, refresh sessions and revoked token ids."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from intranet.core.users.models import TimestampMixin
from intranet.extensions import db


class Role(db.Model, TimestampMixin):
    """Permission code carried in the JWT ``roles`` claim (``admin``, ``reservations:write``)."""

    __tablename__ = "role"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(db.String(255), default="")


class UserRole(db.Model):
    __tablename__ = "user_role"

    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    role_id: Mapped[int] = mapped_column(db.ForeignKey("role.id", ondelete="CASCADE"), primary_key=True)


class SessionToken(db.Model, TimestampMixin):
    """One row per issued refresh token."""

    __tablename__ = "session_token"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    jti: Mapped[str] = mapped_column(db.String(64), nullable=False, unique=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


class RevokedToken(db.Model):
    """Access or refresh token ids rejected by the blocklist loader."""

    __tablename__ = "revoked_token"

    id: Mapped[int] = mapped_column(primary_key=True)
    jti: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    token_type: Mapped[str] = mapped_column(db.String(16), nullable=False, default="access")
    user_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id", ondelete="SET NULL"))
    revoked_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
