"""Room booking model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from intranet.extensions import db


class Booking(db.Model):
    """
    Reservation of one catalog room for the half-open interval
    ``[start_time, end_time)``.

    Owner identity is denormalised (name + e-mail) so ownership checks and
    listings never depend on the user row. ``client_ref`` carries the
    client-supplied idempotency key used when replaying offline writes.
    """

    __tablename__ = "reservations_booking"
    __table_args__ = (
        db.Index("ix_reservations_booking_room_start", "room", "start_time"),
        db.Index("ix_reservations_booking_room_end", "room", "end_time"),
        db.Index("ix_reservations_booking_owner", "owner_user_id"),
        db.UniqueConstraint("client_ref", name="uq_reservations_booking_client_ref"),
        db.CheckConstraint("start_time < end_time", name="ck_reservations_booking_interval"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    room: Mapped[str] = mapped_column(db.String(64), nullable=False)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime] = mapped_column(nullable=False)

    owner_user_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id", ondelete="SET NULL"))
    owner_email: Mapped[str] = mapped_column(db.String(255), nullable=False)
    owner_name: Mapped[str] = mapped_column(db.String(255), nullable=False)

    external_ref: Mapped[str | None] = mapped_column(db.String(255))
    client_ref: Mapped[str | None] = mapped_column(db.String(64))

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


__all__ = ["Booking"]
