"""User and profile models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from intranet.extensions import db


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)


class User(db.Model, TimestampMixin):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(db.String(255))
    sector: Mapped[str] = mapped_column(db.String(64), nullable=False, default="Geral")
    avatar_url: Mapped[str | None] = mapped_column(db.String(512))
    is_active: Mapped[bool] = mapped_column(default=True)

    roles = relationship("Role", secondary="user_role", backref="users", lazy="joined")

    @property
    def role_codes(self) -> list[str]:
        return sorted(role.code for role in self.roles or [])

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@", 1)[0]
