"""Application configuration loaded from environment variables (and an optional .env file)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Runtime settings derived from environment variables."""

    tasks_file: Optional[str]
    host: str
    port: int
    log_level: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings from the environment."""

    load_dotenv()

    # An explicitly empty TASKS_FILE disables persistence.
    tasks_file = os.getenv("TASKS_FILE", "tasks.json").strip() or None

    return Settings(
        tasks_file=tasks_file,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["Settings", "get_settings"]
