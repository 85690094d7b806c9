"""Protein exchange model."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Mapped, mapped_column

from intranet.extensions import db


class ProteinExchange(db.Model):
    """At most one exchange per user and meal day; resubmitting replaces it."""

    __tablename__ = "protein_exchange"
    __table_args__ = (db.UniqueConstraint("user_id", "exchange_date", name="uq_protein_exchange_user_day"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    user_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    exchange_date: Mapped[date] = mapped_column(nullable=False)
    original_protein: Mapped[str] = mapped_column(db.String(120), nullable=False)
    new_protein: Mapped[str] = mapped_column(db.String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
