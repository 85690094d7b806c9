"""Mural post, like and comment models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from intranet.extensions import db


class MuralPost(db.Model):
    __tablename__ = "mural_post"
    __table_args__ = (db.Index("ix_mural_post_feed", "is_active", "pinned", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    content: Mapped[str] = mapped_column(db.Text, nullable=False)
    pinned: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    author_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id", ondelete="SET NULL"))
    author_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)


class MuralLike(db.Model):
    """One row per (post, user); an unlike only stamps ``removed_at``."""

    __tablename__ = "mural_like"
    __table_args__ = (db.UniqueConstraint("post_id", "user_id", name="uq_mural_like_post_user"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(db.ForeignKey("mural_post.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    removed_at: Mapped[datetime | None] = mapped_column()

    @property
    def is_active(self) -> bool:
        return self.removed_at is None


class MuralComment(db.Model):
    __tablename__ = "mural_comment"
    __table_args__ = (db.Index("ix_mural_comment_post", "post_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(db.ForeignKey("mural_post.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id", ondelete="SET NULL"))
    user_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    text: Mapped[str] = mapped_column(db.Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
