"""Outbox dispatcher settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class DispatchConfig:
    batch_size: int = 50
    poll_interval: float = 5.0
    max_attempts: int = 5
    backoff_seconds: float = 5.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_env(cls) -> "DispatchConfig":
        """Read OUTBOX_* variables (a local .env is honoured)."""
        load_dotenv()
        defaults = cls()
        return cls(
            batch_size=int(os.environ.get("OUTBOX_BATCH_SIZE", defaults.batch_size)),
            poll_interval=float(os.environ.get("OUTBOX_POLL_INTERVAL", defaults.poll_interval)),
            max_attempts=int(os.environ.get("OUTBOX_MAX_ATTEMPTS", defaults.max_attempts)),
            backoff_seconds=float(os.environ.get("OUTBOX_BACKOFF_SECONDS", defaults.backoff_seconds)),
            backoff_multiplier=float(os.environ.get("OUTBOX_BACKOFF_MULTIPLIER", defaults.backoff_multiplier)),
        )
