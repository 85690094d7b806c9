"""Admin API."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from intranet.core.utils.decorators import ADMIN_ROLE, require_roles
from intranet.domains.admin.services import dashboard

admin_api_bp = Blueprint("admin_api", __name__)


@admin_api_bp.get("/dashboard")
@require_roles(ADMIN_ROLE)
def dashboard_view():
    body = dashboard(current_app.config.get("RANKING_DEFAULT_LIMIT", 10))
    return jsonify({"ok": True, "dashboard": body.model_dump(mode="json")})
