"""Gamification aggregate and append-only activity log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from intranet.extensions import db


class GamificationProfile(db.Model):
    """
    Derived per-user aggregate (points, level, streak, badges).

    Recomputed from ``ActivityEvent`` rows on every recorded activity; never
    patched independently of the log.
    """

    __tablename__ = "gamification_profile"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_gamification_profile_user"),
        db.Index("ix_gamification_profile_points", "total_points", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    display_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    sector: Mapped[str] = mapped_column(db.String(64), nullable=False, default="Geral")
    avatar_url: Mapped[str | None] = mapped_column(db.String(512))

    total_points: Mapped[int] = mapped_column(nullable=False, default=0)
    level: Mapped[int] = mapped_column(nullable=False, default=1)
    streak: Mapped[int] = mapped_column(nullable=False, default=0)
    badges: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    activity_count: Mapped[int] = mapped_column(nullable=False, default=0)
    last_activity_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    activities: Mapped[list["ActivityEvent"]] = relationship(
        "ActivityEvent",
        primaryjoin="GamificationProfile.user_id == foreign(ActivityEvent.user_id)",
        order_by="(ActivityEvent.occurred_at.desc(), ActivityEvent.id.desc())",
        viewonly=True,
        lazy="select",
    )


class ActivityEvent(db.Model):
    """Immutable record of one point-earning action."""

    __tablename__ = "gamification_activity"
    __table_args__ = (
        db.Index("ix_gamification_activity_user_occurred", "user_id", "occurred_at"),
        db.Index("ix_gamification_activity_category", "category"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    user_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    category: Mapped[str] = mapped_column(db.String(32), nullable=False)
    description: Mapped[str] = mapped_column(db.String(512), nullable=False, default="")
    points: Mapped[int] = mapped_column(nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", db.JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)


__all__ = ["GamificationProfile", "ActivityEvent"]
