"""Reception appointments API."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from intranet.core.auth.principal import current_principal
from intranet.core.utils.decorators import csrf_protected
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.reception.schemas import AppointmentCreate, AppointmentResponse
from intranet.domains.reception.services import create_appointment, list_appointments

reception_api_bp = Blueprint("reception_api", __name__)


@reception_api_bp.get("/appointments")
@jwt_required()
def appointments_index():
    limit = current_app.config.get("RECEPTION_LIST_LIMIT", 20)
    items = [AppointmentResponse.model_validate(a).model_dump(mode="json") for a in list_appointments(limit)]
    return jsonify({"ok": True, "appointments": items})


@reception_api_bp.post("/appointments")
@jwt_required()
@csrf_protected
def appointments_create():
    principal = current_principal()
    if principal is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    payload = request.get_json(silent=True) or {}
    try:
        data = AppointmentCreate.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    appointment = create_appointment(principal, data)
    return jsonify({"ok": True, "appointment": AppointmentResponse.model_validate(appointment).model_dump(mode="json")}), 201
