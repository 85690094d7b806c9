"""Gamification API: profile, activities, ranking, stats."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from intranet.core.auth.principal import current_principal
from intranet.core.utils.decorators import csrf_protected, require_roles
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.gamification.mappers import map_activity, map_profile
from intranet.domains.gamification.models import GamificationProfile
from intranet.domains.gamification.schemas import ActivityCreate, RankingParams, StatsResponse
from intranet.domains.gamification.services import (
    category_breakdown,
    ensure_profile,
    get_profile,
    list_activities,
    rank,
    record_activity,
    top_users,
    total_activity_count,
)

gamification_api_bp = Blueprint("gamification_api", __name__)


def _unauthorized():
    return jsonify({"ok": False, "error": "unauthorized"}), 401


@gamification_api_bp.get("/me")
@jwt_required()
def my_profile():
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    profile = ensure_profile(principal)
    return jsonify({"ok": True, "profile": map_profile(profile, rank(principal.id)).model_dump(mode="json")})


@gamification_api_bp.get("/me/activities")
@jwt_required()
def my_activities():
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    limit = request.args.get("limit", default=20, type=int)
    limit = max(1, min(limit or 20, 100))
    events = list_activities(principal.id, limit=limit)
    return jsonify({"ok": True, "activities": [map_activity(e).model_dump(mode="json") for e in events]})


@gamification_api_bp.post("/activities")
@jwt_required()
@csrf_protected
def create_activity():
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    payload = request.get_json(silent=True) or {}
    try:
        data = ActivityCreate.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    ensure_profile(principal)
    event = record_activity(principal.id, data.category, data.description, metadata=data.metadata)
    if event is None:
        return jsonify({"ok": False, "error": "not_found"}), 404
    profile = get_profile(principal.id)
    return (
        jsonify(
            {
                "ok": True,
                "activity": map_activity(event).model_dump(mode="json"),
                "profile": map_profile(profile).model_dump(mode="json"),
            }
        ),
        201,
    )


@gamification_api_bp.get("/ranking")
@jwt_required()
def ranking():
    try:
        params = RankingParams.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    limit = params.limit or current_app.config.get("RANKING_DEFAULT_LIMIT", 10)
    profiles = top_users(limit)
    return jsonify(
        {
            "ok": True,
            "ranking": [
                map_profile(profile, position).model_dump(mode="json")
                for position, profile in enumerate(profiles, start=1)
            ],
        }
    )


@gamification_api_bp.get("/users/<int:user_id>/rank")
@jwt_required()
def user_rank(user_id: int):
    position = rank(user_id)
    if position == 0:
        return jsonify({"ok": False, "error": "not_found", "rank": 0}), 404
    return jsonify({"ok": True, "user_id": user_id, "rank": position})


@gamification_api_bp.get("/stats")
@require_roles({"admin"})
def stats():
    body = StatsResponse(
        total_activities=total_activity_count(),
        by_category=category_breakdown(),
        profiles=GamificationProfile.query.count(),
    )
    return jsonify({"ok": True, "stats": body.model_dump()})
