"""User API controllers."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from intranet.core.users.schemas import UserUpdateRequest, serialize_user
from intranet.core.users.services import get_user, update_user
from intranet.core.utils.decorators import csrf_protected
from intranet.core.utils.validation import jsonable_errors

user_api_bp = Blueprint("user_api", __name__)


@user_api_bp.get("/me")
@jwt_required()
def api_me():
    user = get_user(get_jwt_identity())
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "user": serialize_user(user).model_dump()})


@user_api_bp.patch("/me")
@jwt_required()
@csrf_protected
def api_update_me():
    user = get_user(get_jwt_identity())
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    payload = request.get_json(silent=True) or {}
    try:
        data = UserUpdateRequest.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    user = update_user(user, data)
    return jsonify({"ok": True, "user": serialize_user(user).model_dump()})
