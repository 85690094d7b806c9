"""Room catalog API."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from intranet.domains.rooms.catalog import get_room, list_rooms

room_api_bp = Blueprint("room_api", __name__)


@room_api_bp.get("")
@jwt_required()
def rooms_index():
    return jsonify({"ok": True, "rooms": [room.to_dict() for room in list_rooms()]})


@room_api_bp.get("/<room_id>")
@jwt_required()
def room_detail(room_id: str):
    room = get_room(room_id)
    if not room:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "room": room.to_dict()})
