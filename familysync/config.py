"""
FamilySync — Centralized configuration.

Loads all settings from .env. Every key has a default, so a bare checkout
runs against the in-memory document store.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from familysync/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Document store provider: "memory" | "sqlite"
    STORE_PROVIDER: str = "memory"

    # SQLite (only needed when STORE_PROVIDER=sqlite)
    DATABASE_PATH: str = "data/familysync.db"

    TIMEZONE: str = "Europe/Bucharest"

    # Scheduling rules
    TIGHT_TRANSITION_MINUTES: int = 15
    LONG_EVENT_HOURS: int = 12

    # Soft-deleted events are hard-deleted after this many seconds
    UNDO_WINDOW_SECONDS: float = 30.0

    CURRENCY: str = "RON"
    LOG_LEVEL: str = "INFO"

    @field_validator("TIGHT_TRANSITION_MINUTES", "LONG_EVENT_HOURS", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("UNDO_WINDOW_SECONDS", mode="before")
    @classmethod
    def parse_seconds(cls, v: str | float) -> float:
        return float(v)

    @field_validator("STORE_PROVIDER", mode="before")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower() or "memory"


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        STORE_PROVIDER=os.getenv("STORE_PROVIDER", "memory"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/familysync.db"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Bucharest"),
        TIGHT_TRANSITION_MINUTES=os.getenv("TIGHT_TRANSITION_MINUTES", "15"),
        LONG_EVENT_HOURS=os.getenv("LONG_EVENT_HOURS", "12"),
        UNDO_WINDOW_SECONDS=os.getenv("UNDO_WINDOW_SECONDS", "30"),
        CURRENCY=os.getenv("CURRENCY", "RON"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from familysync.config import settings
settings = _load_settings()
