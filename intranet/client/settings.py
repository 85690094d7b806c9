"""Configuration for the booking client process."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class ClientSettings:
    """Runtime knobs for the client; built from the environment."""

    api_url: str
    timeout: float
    state_path: Path
    reconcile_interval: float
    timezone: str = "America/Sao_Paulo"
    email: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ClientSettings":
        load_dotenv()
        return cls(
            api_url=os.environ.get("PORTAL_API_URL", "http://localhost:5000").rstrip("/"),
            timeout=float(os.environ.get("PORTAL_CLIENT_TIMEOUT", "10")),
            state_path=Path(os.environ.get("PORTAL_CLIENT_STATE", "instance/client_state.json")),
            reconcile_interval=float(os.environ.get("PORTAL_RECONCILE_INTERVAL", "30")),
            timezone=os.environ.get("PORTAL_TIMEZONE", "America/Sao_Paulo"),
            email=os.environ.get("PORTAL_EMAIL") or None,
            password=os.environ.get("PORTAL_PASSWORD") or None,
        )
