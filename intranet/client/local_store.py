"""Durable client state: last server snapshot plus the pending write queue."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _empty_state() -> Dict[str, Any]:
    return {"records": [], "queue": [], "fetched_at": None}


class LocalStore:
    """JSON file replaced atomically on every save."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return _empty_state()
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError):
            logger.exception("Unreadable client state at %s; starting empty", self.path)
            return _empty_state()
        if not isinstance(data, dict):
            logger.error("Client state at %s is not an object; starting empty", self.path)
            return _empty_state()
        state = _empty_state()
        state.update({k: v for k, v in data.items() if k in state})
        return state

    def save(self, state: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, ensure_ascii=False, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class MemoryStore:
    """Non-durable store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self.state: Dict[str, Any] = _empty_state()

    def load(self) -> Dict[str, Any]:
        return json.loads(json.dumps(self.state))

    def save(self, state: Dict[str, Any]) -> None:
        self.state = json.loads(json.dumps(state))
