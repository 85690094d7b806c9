"""Input validation helpers."""

from __future__ import annotations

from pydantic import ValidationError


def jsonable_errors(exc: ValidationError) -> list[dict]:
    """Pydantic error list with ``ctx`` values coerced to strings."""
    errors = exc.errors()
    for err in errors:
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        err.pop("url", None)
    return errors
