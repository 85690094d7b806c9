"""Auth API: register, login, refresh, logout, identity."""

from __future__ import annotations

from flask import Blueprint, jsonify, request, session
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required
from pydantic import ValidationError

from intranet.core.auth.auth_service import (
    authenticate_user,
    issue_tokens,
    record_login,
    refresh_access_token,
    register_user,
    revoke_token,
)
from intranet.core.auth.csrf import generate_csrf_token
from intranet.core.auth.schemas import LoginRequest, RegisterRequest
from intranet.core.users.schemas import serialize_user
from intranet.core.users.services import get_user
from intranet.core.utils.validation import jsonable_errors
from intranet.extensions import limiter

auth_api_bp = Blueprint("auth_api", __name__)


@auth_api_bp.post("/register")
@limiter.limit("5/minute")
def register():
    payload = request.get_json(silent=True) or {}
    try:
        data = RegisterRequest.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    try:
        result = register_user(data, auto_issue_tokens=True)
    except ValueError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 409
    user = result.pop("user")
    return (
        jsonify(
            {
                "ok": True,
                **result,
                "csrf_token": generate_csrf_token(),
                "user": serialize_user(user).model_dump(),
            }
        ),
        201,
    )


@auth_api_bp.post("/login")
@limiter.limit("10/minute")
def login():
    # Avoid carrying over any stale Flask session state into login.
    session.clear()
    payload = request.get_json(silent=True) or {}
    try:
        data = LoginRequest.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400

    user = authenticate_user(data.email, data.password)
    if not user:
        return jsonify({"ok": False, "error": "invalid_credentials"}), 401

    tokens = issue_tokens(user)
    record_login(user)
    return jsonify(
        {
            "ok": True,
            **tokens,
            "csrf_token": generate_csrf_token(),
            "user": serialize_user(user).model_dump(),
        }
    )


@auth_api_bp.post("/refresh")
@jwt_required(refresh=True)
@limiter.limit("30/minute")
def refresh():
    access_token = refresh_access_token(get_jwt_identity())
    if access_token is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    return jsonify({"ok": True, "access_token": access_token, "csrf_token": generate_csrf_token()})


@auth_api_bp.post("/logout")
@jwt_required(verify_type=False)
def logout():
    claims = get_jwt() or {}
    revoke_token(claims["jti"], user_id=int(get_jwt_identity()), token_type=claims.get("type", "access"))
    session.clear()
    return jsonify({"ok": True})


@auth_api_bp.get("/me")
@jwt_required()
def me():
    user = get_user(get_jwt_identity())
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "user": serialize_user(user).model_dump(), "csrf_token": generate_csrf_token()})
