"""Intranet portal application factory and bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from flask import Flask

from intranet.config import config_by_name
from intranet.core.events.event_bus import event_bus
from intranet.extensions import init_extensions, jwt


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the portal Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)

    # Normalize relative sqlite paths to the project root.
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and not db_uri.startswith("sqlite:////"):
        abs_path = project_root / db_uri.replace("sqlite:///", "", 1)
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    init_extensions(app)
    _register_models()
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_auth_handlers(app)

    app.extensions["event_bus"] = event_bus

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    from intranet.scripts.manage import register_commands

    register_commands(app)
    return app


def _register_models() -> None:
    """Import every model module so metadata and migrations see all tables."""
    from intranet.core.auth import models as auth_models  # noqa: F401
    from intranet.core.events import event_models  # noqa: F401
    from intranet.core.users import models as user_models  # noqa: F401
    from intranet.domains.equipment import models as equipment_models  # noqa: F401
    from intranet.domains.gamification import models as gamification_models  # noqa: F401
    from intranet.domains.mural import models as mural_models  # noqa: F401
    from intranet.domains.protein_exchange import models as protein_exchange_models  # noqa: F401
    from intranet.domains.reception import models as reception_models  # noqa: F401
    from intranet.domains.reservations import models as reservation_models  # noqa: F401
    from intranet.portal_platform.outbox import models as outbox_models  # noqa: F401


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from intranet.core.auth.controllers import auth_api_bp
    from intranet.core.users.controllers import user_api_bp
    from intranet.domains.admin.controllers import admin_api_bp
    from intranet.domains.equipment.controllers import equipment_api_bp
    from intranet.domains.gamification.controllers.gamification_api import gamification_api_bp
    from intranet.domains.mural.controllers import mural_api_bp
    from intranet.domains.protein_exchange.controllers import protein_exchange_api_bp
    from intranet.domains.reception.controllers import reception_api_bp
    from intranet.domains.reservations.controllers.booking_api import booking_api_bp
    from intranet.domains.rooms.controllers import room_api_bp

    app.register_blueprint(auth_api_bp, url_prefix="/api/auth")
    app.register_blueprint(user_api_bp, url_prefix="/api/users")
    app.register_blueprint(room_api_bp, url_prefix="/api/rooms")
    app.register_blueprint(booking_api_bp, url_prefix="/api/reservations")
    app.register_blueprint(gamification_api_bp, url_prefix="/api/gamification")
    app.register_blueprint(reception_api_bp, url_prefix="/api/reception")
    app.register_blueprint(mural_api_bp, url_prefix="/api/mural")
    app.register_blueprint(protein_exchange_api_bp, url_prefix="/api/protein-exchange")
    app.register_blueprint(equipment_api_bp, url_prefix="/api/equipment")
    app.register_blueprint(admin_api_bp, url_prefix="/api/admin")


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500


def _register_auth_handlers(app: Flask) -> None:
    """JWT revocation lookup and JSON error bodies for token failures."""
    from intranet.core.auth.auth_service import is_token_revoked

    @jwt.token_in_blocklist_loader
    def _token_revoked(_jwt_header, jwt_payload: dict) -> bool:
        return is_token_revoked(jwt_payload.get("jti", ""))

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return {"ok": False, "error": "unauthorized", "message": reason}, 401

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return {"ok": False, "error": "invalid_token", "message": reason}, 401

    @jwt.expired_token_loader
    def _expired_token(_jwt_header, _jwt_payload):
        return {"ok": False, "error": "token_expired"}, 401

    @jwt.revoked_token_loader
    def _revoked_token(_jwt_header, _jwt_payload):
        return {"ok": False, "error": "token_revoked"}, 401
