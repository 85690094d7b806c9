"""Auth domain event catalog."""

from __future__ import annotations

AUTH_USER_REGISTERED = "auth.user.registered"
AUTH_USER_LOGGED_IN = "auth.user.logged_in"

EVENT_CATALOG = {
    AUTH_USER_REGISTERED: {
        "version": "v1",
        "payload": {
            "user_id": "int",
            "email": "str",
            "full_name": "str?",
            "sector": "str",
        },
    },
    AUTH_USER_LOGGED_IN: {
        "version": "v1",
        "payload": {
            "user_id": "int",
            "logged_in_at": "datetime",
        },
    },
}

__all__ = [
    "AUTH_USER_REGISTERED",
    "AUTH_USER_LOGGED_IN",
    "EVENT_CATALOG",
]
