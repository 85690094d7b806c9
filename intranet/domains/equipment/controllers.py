"""Equipment requests API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from intranet.core.auth.principal import current_principal
from intranet.core.utils.decorators import ADMIN_ROLE, csrf_protected, require_roles
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.equipment.schemas import (
    EquipmentRequestCreate,
    EquipmentRequestResponse,
    EquipmentStatusUpdate,
)
from intranet.domains.equipment.services import create_request, list_requests, list_requests_for, set_status

equipment_api_bp = Blueprint("equipment_api", __name__)


def _dump(items):
    return [EquipmentRequestResponse.model_validate(item).model_dump(mode="json") for item in items]


def _validation_response(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400


@equipment_api_bp.get("/requests")
@require_roles(ADMIN_ROLE)
def requests_index():
    return jsonify({"ok": True, "requests": _dump(list_requests())})


@equipment_api_bp.get("/requests/mine")
@jwt_required()
def requests_mine():
    principal = current_principal()
    if principal is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    return jsonify({"ok": True, "requests": _dump(list_requests_for(principal.id))})


@equipment_api_bp.post("/requests")
@jwt_required()
@csrf_protected
def requests_create():
    principal = current_principal()
    if principal is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    try:
        data = EquipmentRequestCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_response(exc)
    item = create_request(principal, data)
    return jsonify({"ok": True, "request": _dump([item])[0]}), 201


@equipment_api_bp.patch("/requests/<int:request_id>")
@require_roles(ADMIN_ROLE)
@csrf_protected
def requests_update(request_id: int):
    try:
        data = EquipmentStatusUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_response(exc)
    item = set_status(request_id, data.status)
    if item is None:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "request": _dump([item])[0]})
