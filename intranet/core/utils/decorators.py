"""Controller decorators: role gates and CSRF checks."""

from __future__ import annotations

from functools import wraps
from typing import Callable, Iterable, TypeVar, Union

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException

from intranet.core.auth.csrf import CSRF_HEADER, validate_csrf_token

F = TypeVar("F", bound=Callable)

ADMIN_ROLE = "admin"


def _claimed_roles() -> set[str] | None:
    """Roles from a valid JWT, or None when the request carries none."""
    try:
        verify_jwt_in_request()
    except JWTExtendedException:
        return None
    return set((get_jwt() or {}).get("roles") or [])


def require_roles(required_roles: Union[str, Iterable[str]]):
    """Let the request through only if the JWT holds every role listed; admins always pass."""
    needed = {required_roles} if isinstance(required_roles, str) else set(required_roles)

    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args, **kwargs):  # type: ignore[misc]
            roles = _claimed_roles()
            if roles is None:
                return jsonify({"ok": False, "error": "unauthorized"}), 401
            if ADMIN_ROLE not in roles and not needed <= roles:
                return jsonify({"ok": False, "error": "forbidden", "missing": sorted(needed - roles)}), 403
            return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def csrf_protected(fn: F) -> F:
    """Reject state-changing calls whose CSRF header does not match the session token."""

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[misc]
        if current_app.config.get("WTF_CSRF_ENABLED", True) and not validate_csrf_token(
            request.headers.get(CSRF_HEADER)
        ):
            return jsonify({"ok": False, "error": "csrf_failed"}), 403
        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
