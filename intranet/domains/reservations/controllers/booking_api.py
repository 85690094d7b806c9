"""Booking API controllers (thin, service-backed)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from intranet.core.auth.principal import current_principal
from intranet.core.utils.decorators import csrf_protected, require_roles
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingValidationError,
    ReservationError,
    WriteInProgressError,
)
from intranet.domains.reservations.mappers import booking_to_dict
from intranet.domains.reservations.schemas import BookingCreate, BookingListParams, BookingUpdate
from intranet.domains.reservations.services import (
    create_booking,
    delete_booking,
    get_booking,
    list_bookings,
    update_booking,
)
from intranet.extensions import limiter

booking_api_bp = Blueprint("booking_api", __name__)

WRITE_ROLES = {"reservations:write"}


def _error_response(exc: ReservationError):
    body = {"ok": False, "error": exc.code, "message": str(exc)}
    if isinstance(exc, BookingConflictError):
        body["conflict"] = exc.conflict
        return jsonify(body), 409
    if isinstance(exc, WriteInProgressError):
        return jsonify(body), 409
    if isinstance(exc, BookingValidationError):
        body["field"] = exc.field
        return jsonify(body), 400
    if isinstance(exc, BookingPermissionError):
        return jsonify(body), 403
    if isinstance(exc, BookingNotFoundError):
        return jsonify(body), 404
    return jsonify(body), 400


def _validation_response(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400


def _unauthorized():
    return jsonify({"ok": False, "error": "unauthorized"}), 401


@booking_api_bp.get("/bookings")
@jwt_required()
def list_bookings_endpoint():
    try:
        params = BookingListParams.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return _validation_response(exc)
    bookings = list_bookings(room=params.room, start=params.start, end=params.end)
    return jsonify({"ok": True, "bookings": [booking_to_dict(b) for b in bookings]})


@booking_api_bp.get("/bookings/<int:booking_id>")
@jwt_required()
def get_booking_endpoint(booking_id: int):
    booking = get_booking(booking_id)
    if not booking:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "booking": booking_to_dict(booking)})


@booking_api_bp.post("/bookings")
@limiter.limit("60/minute")
@require_roles(WRITE_ROLES)
@csrf_protected
def create_booking_endpoint():
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    payload = request.get_json(silent=True) or {}
    try:
        data = BookingCreate.model_validate(payload)
    except ValidationError as exc:
        return _validation_response(exc)
    try:
        booking, created = create_booking(principal, **data.model_dump())
    except ReservationError as exc:
        return _error_response(exc)
    return jsonify({"ok": True, "created": created, "booking": booking_to_dict(booking)}), 201 if created else 200


@booking_api_bp.patch("/bookings/<int:booking_id>")
@limiter.limit("60/minute")
@require_roles(WRITE_ROLES)
@csrf_protected
def update_booking_endpoint(booking_id: int):
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    payload = request.get_json(silent=True) or {}
    try:
        data = BookingUpdate.model_validate(payload)
    except ValidationError as exc:
        return _validation_response(exc)
    try:
        booking = update_booking(principal, booking_id, **data.model_dump(exclude_none=True))
    except ReservationError as exc:
        return _error_response(exc)
    return jsonify({"ok": True, "booking": booking_to_dict(booking)})


@booking_api_bp.delete("/bookings/<int:booking_id>")
@limiter.limit("60/minute")
@require_roles(WRITE_ROLES)
@csrf_protected
def delete_booking_endpoint(booking_id: int):
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    try:
        deleted = delete_booking(principal, booking_id)
    except ReservationError as exc:
        return _error_response(exc)
    return jsonify({"ok": True, "deleted": deleted})
