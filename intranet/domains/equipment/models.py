"""Equipment request model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from intranet.extensions import db


class EquipmentRequest(db.Model):
    __tablename__ = "equipment_request"
    __table_args__ = (
        db.Index("ix_equipment_request_requester", "requester_id", "created_at"),
        db.Index("ix_equipment_request_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str] = mapped_column(db.Text, nullable=False)
    priority: Mapped[str] = mapped_column(db.String(16), default="medium", nullable=False)
    status: Mapped[str] = mapped_column(db.String(16), default="pending", nullable=False)
    requester_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id", ondelete="SET NULL"))
    requester_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    requester_email: Mapped[str] = mapped_column(db.String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
