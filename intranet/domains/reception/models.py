"""Reception appointment model."""

from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy.orm import Mapped, mapped_column

from intranet.extensions import db


class ReceptionAppointment(db.Model):
    __tablename__ = "reception_appointment"
    __table_args__ = (db.Index("ix_reception_appointment_when", "visit_date", "visit_time"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    visitor_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    visitor_document: Mapped[str | None] = mapped_column(db.String(64))
    visit_date: Mapped[date] = mapped_column(nullable=False)
    visit_time: Mapped[time] = mapped_column(nullable=False)
    note: Mapped[str | None] = mapped_column(db.Text)
    created_by_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id", ondelete="SET NULL"))
    created_by_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
