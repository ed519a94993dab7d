"""Configuration for the Kickoff tournament API."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _parse_int(value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_list(value: str) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'kickoff.db'}",
)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Web auth (JWT secret, initial admin bootstrap)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-use-long-random-string")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = 7
INITIAL_ADMIN_USERNAME = os.getenv("INITIAL_ADMIN_USERNAME", "admin")
INITIAL_ADMIN_PASSWORD = os.getenv("INITIAL_ADMIN_PASSWORD", "")  # Set to bootstrap first global admin
INVITATION_TTL_DAYS = _parse_int(os.getenv("INVITATION_TTL_DAYS"), 7)

# CORS origins (comma-separated). "*" allows any origin.
CORS_ORIGINS = _parse_list(os.getenv("CORS_ORIGINS", "*")) or ["*"]

# Public read API caching
SCOREBOARD_CACHE_SECONDS = _parse_int(os.getenv("SCOREBOARD_CACHE_SECONDS"), 5)
EVENT_FEED_CACHE_SECONDS = _parse_int(os.getenv("EVENT_FEED_CACHE_SECONDS"), 3)
EVENT_FEED_PAGE_SIZE = _parse_int(os.getenv("EVENT_FEED_PAGE_SIZE"), 50)

# Rate limits (requests per minute per client address)
RATE_LIMIT_PUBLIC_PER_MINUTE = _parse_int(os.getenv("RATE_LIMIT_PUBLIC_PER_MINUTE"), 300)
RATE_LIMIT_AUTH_PER_MINUTE = _parse_int(os.getenv("RATE_LIMIT_AUTH_PER_MINUTE"), 10)

# Edition defaults
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Europe/Oslo")
