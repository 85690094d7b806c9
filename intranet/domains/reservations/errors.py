"""Reservation error taxonomy shared by the server services and the client."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ReservationError(Exception):
    """Base class; ``code`` is the error string returned by the API."""

    code = "reservation_error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.code)


class BookingValidationError(ReservationError):
    """Malformed interval or missing required field."""

    code = "validation_error"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class BookingConflictError(ReservationError):
    """The proposed interval overlaps an existing booking of the same room."""

    code = "conflict"

    def __init__(self, conflict: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("overlap exists")
        self.conflict = conflict or {}


class BookingPermissionError(ReservationError):
    """Caller is not the owner of the booking."""

    code = "not_owner"


class BookingNotFoundError(ReservationError):
    code = "not_found"


class WriteInProgressError(ReservationError):
    """Another write to the same booking has not finished yet."""

    code = "write_in_progress"


class TransportError(ReservationError):
    """Network failure or non-2xx server response that may succeed on retry."""

    code = "transport_error"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
