"""Reservation models."""

from intranet.domains.reservations.models.booking import Booking

__all__ = ["Booking"]
