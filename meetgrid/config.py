"""
MeetGrid: centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from meetgrid/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_REMOTE_PROVIDERS = ("firebase", "none")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Remote store: "firebase" | "none" (local-only)
    REMOTE_PROVIDER: str = "firebase"

    # Firebase Realtime Database (only needed when REMOTE_PROVIDER=firebase)
    FIREBASE_DATABASE_URL: str = ""
    FIREBASE_AUTH_TOKEN: str = ""
    REMOTE_TIMEOUT_SECONDS: float = 5.0

    # SQLite local mirror
    LOCAL_DATABASE_PATH: str = "data/meetgrid.db"

    # Availability editing
    AUTOSAVE_DEBOUNCE_SECONDS: float = 0.5
    GESTURE_THROTTLE_SECONDS: float = 0.05   # ~20 updates/sec
    GESTURE_TAP_THRESHOLD: float = 10.0      # pixels

    # Scoring
    MINIMUM_PARTICIPANTS: int = 1
    CALENDAR_DAYS: int = 14

    @field_validator("REMOTE_PROVIDER", mode="before")
    @classmethod
    def parse_provider(cls, v: str) -> str:
        provider = (v or "none").strip().lower()
        if provider not in _REMOTE_PROVIDERS:
            raise ValueError(
                f"REMOTE_PROVIDER must be one of {_REMOTE_PROVIDERS}, got {v!r}"
            )
        return provider

    @field_validator("FIREBASE_DATABASE_URL", mode="before")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @field_validator("MINIMUM_PARTICIPANTS", "CALENDAR_DAYS", mode="before")
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value < 1:
            raise ValueError("must be at least 1")
        return value


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        REMOTE_PROVIDER=os.getenv("REMOTE_PROVIDER", "firebase"),
        FIREBASE_DATABASE_URL=os.getenv("FIREBASE_DATABASE_URL", ""),
        FIREBASE_AUTH_TOKEN=os.getenv("FIREBASE_AUTH_TOKEN", ""),
        REMOTE_TIMEOUT_SECONDS=os.getenv("REMOTE_TIMEOUT_SECONDS", "5"),
        LOCAL_DATABASE_PATH=os.getenv("LOCAL_DATABASE_PATH", "data/meetgrid.db"),
        AUTOSAVE_DEBOUNCE_SECONDS=os.getenv("AUTOSAVE_DEBOUNCE_SECONDS", "0.5"),
        GESTURE_THROTTLE_SECONDS=os.getenv("GESTURE_THROTTLE_SECONDS", "0.05"),
        GESTURE_TAP_THRESHOLD=os.getenv("GESTURE_TAP_THRESHOLD", "10"),
        MINIMUM_PARTICIPANTS=os.getenv("MINIMUM_PARTICIPANTS", "1"),
        CALENDAR_DAYS=os.getenv("CALENDAR_DAYS", "14"),
    )


# Singleton: imported by all other modules as:
#   from meetgrid.config import settings
settings = _load_settings()
