"""Mural API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from intranet.core.auth.principal import current_principal
from intranet.core.utils.decorators import csrf_protected
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.mural.schemas import CommentCreate, CommentResponse, PostCreate
from intranet.domains.mural.services import (
    add_comment,
    can_publish,
    create_post,
    get_post,
    list_comments,
    list_posts,
    toggle_like,
)

mural_api_bp = Blueprint("mural_api", __name__)


def _unauthorized():
    return jsonify({"ok": False, "error": "unauthorized"}), 401


def _not_found():
    return jsonify({"ok": False, "error": "not_found"}), 404


def _validation_response(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400


@mural_api_bp.get("/posts")
@jwt_required()
def posts_index():
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    posts = [post.model_dump(mode="json") for post in list_posts(principal.id)]
    return jsonify({"ok": True, "posts": posts})


@mural_api_bp.post("/posts")
@jwt_required()
@csrf_protected
def posts_create():
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    if not can_publish(principal):
        return jsonify({"ok": False, "error": "forbidden"}), 403
    try:
        data = PostCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_response(exc)
    post, points = create_post(principal, data)
    return jsonify({"ok": True, "id": post.id, "points": points}), 201


@mural_api_bp.post("/posts/<int:post_id>/like")
@jwt_required()
@csrf_protected
def posts_like(post_id: int):
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    post = get_post(post_id)
    if post is None:
        return _not_found()
    liked, points = toggle_like(principal, post)
    return jsonify({"ok": True, "action": "liked" if liked else "unliked", "points": points})


@mural_api_bp.get("/posts/<int:post_id>/comments")
@jwt_required()
def comments_index(post_id: int):
    post = get_post(post_id)
    if post is None:
        return _not_found()
    comments = [CommentResponse.model_validate(c).model_dump(mode="json") for c in list_comments(post)]
    return jsonify({"ok": True, "comments": comments})


@mural_api_bp.post("/posts/<int:post_id>/comments")
@jwt_required()
@csrf_protected
def comments_create(post_id: int):
    principal = current_principal()
    if principal is None:
        return _unauthorized()
    post = get_post(post_id)
    if post is None:
        return _not_found()
    try:
        data = CommentCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_response(exc)
    comment, points = add_comment(principal, post, data)
    return (
        jsonify({"ok": True, "comment": CommentResponse.model_validate(comment).model_dump(mode="json"), "points": points}),
        201,
    )
