"""Application configuration for the intranet portal.

Values come from the environment (a local ``.env`` is loaded first); the
class picked by ``APP_ENV`` only changes defaults.
"""

from __future__ import annotations

import json
import os
from datetime import timedelta
from typing import Dict, Type

from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

load_dotenv()


def _engine_options_from_uri(uri: str) -> dict:
    backend = make_url(uri).get_backend_name()
    if backend == "sqlite":
        # Booking writes wait on the sqlite file lock rather than failing fast.
        return {"pool_pre_ping": True, "connect_args": {"timeout": 30}}
    if backend in {"postgresql", "postgres"}:
        timeout = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
        return {"pool_pre_ping": True, "pool_size": 10, "connect_args": {"connect_timeout": timeout}}
    return {"pool_pre_ping": True}


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def _room_catalog_from_env() -> list[dict] | None:
    raw = os.environ.get("ROOM_CATALOG_JSON")
    if not raw:
        return None
    return json.loads(raw)


class BaseConfig:
    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///instance/intranet.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(256 * 1024)))

    # The Flask session only carries the CSRF token; API auth is bearer JWTs.
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _flag("SESSION_COOKIE_SECURE", "false")
    WTF_CSRF_ENABLED = _flag("PORTAL_CSRF_ENABLED", "true")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.environ.get("JWT_ACCESS_MINUTES", "30")))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.environ.get("JWT_REFRESH_DAYS", "14")))

    RATELIMIT_ENABLED = _flag("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # None keeps the built-in rooms.
    ROOM_CATALOG = _room_catalog_from_env()
    # Calendar-day boundary for activity streaks and wall-clock booking times.
    PORTAL_TIMEZONE = os.environ.get("PORTAL_TIMEZONE", "America/Sao_Paulo")
    RANKING_DEFAULT_LIMIT = int(os.environ.get("RANKING_DEFAULT_LIMIT", "10"))
    RECEPTION_LIST_LIMIT = int(os.environ.get("RECEPTION_LIST_LIMIT", "20"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    # In-memory SQLite; Flask-SQLAlchemy pins it to a single connection.
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite://")
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    PORTAL_TIMEZONE = "UTC"
    ROOM_CATALOG = None


class ProductionConfig(BaseConfig):
    SESSION_COOKIE_SECURE = True


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "ci": TestingConfig,
}
