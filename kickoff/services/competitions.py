"""Competition and edition creation, archiving and input normalization."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from kickoff.models import Competition, Edition, EditionSettings, UserRole
from kickoff.models.competition import EDITION_FORMATS
from kickoff.problems import ProblemError, bad_request, conflict, not_found
from kickoff.services.colors import contrast_ratio
from kickoff.services.scoreboard_types import DEFAULT_ROTATION, DEFAULT_ROTATION_SECONDS, DEFAULT_THEME
from kickoff.services.slugs import normalize_slug
from kickoff.services.timeutil import to_naive_utc, utcnow

logger = logging.getLogger("kickoff.competitions")

MIN_ROTATION_SECONDS = 2
MIN_CONTRAST_RATIO = 4.5


@dataclass
class ThemeRecord:
    primary_color: str
    secondary_color: str
    background_image_url: Optional[str] = None


def normalize_name(value: Optional[str]) -> str:
    name = (value or "").strip()
    if not name:
        raise bad_request("A descriptive name must be provided.", slug="invalid-name", title="Name is required")
    return name


def normalize_optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def normalize_format(value: str) -> str:
    if value not in EDITION_FORMATS:
        raise bad_request(
            f'Edition format "{value}" is not supported.',
            slug="invalid-edition-format",
            title="Edition format not supported",
        )
    return value


def normalize_timezone(value: Optional[str]) -> str:
    name = (value or "").strip()
    if not name:
        return config.DEFAULT_TIMEZONE
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise bad_request(
            f'Timezone "{name}" is not supported.',
            slug="invalid-timezone",
            title="Timezone not recognized",
        ) from None
    return name


def normalize_rotation_seconds(value) -> int:
    """None gives the default; anything else must be a number of at least 2 seconds."""
    if value is None:
        return DEFAULT_ROTATION_SECONDS
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise bad_request(
            "Provide a numeric value for scoreboard rotation seconds.",
            slug="invalid-rotation-seconds",
            title="Scoreboard rotation must be numeric",
        )
    seconds = math.floor(value)
    if seconds < MIN_ROTATION_SECONDS:
        raise bad_request(
            f"Scoreboard rotation must be at least {MIN_ROTATION_SECONDS} seconds.",
            slug="invalid-rotation-seconds",
            title="Scoreboard rotation too low",
        )
    return seconds


def normalize_hex_color(value: Optional[str]) -> str:
    color = (value or "").strip()
    if not color:
        raise bad_request(
            "Primary and secondary colors must be provided.",
            slug="invalid-color",
            title="Color is required",
        )
    if len(color) != 7 or not color.startswith("#") or any(c not in "0123456789abcdefABCDEF" for c in color[1:]):
        raise bad_request(
            "Colors must be 6-digit hexadecimal values (e.g. #1A2B3C).",
            slug="invalid-color",
            title="Color format invalid",
        )
    return "#" + color[1:].upper()


def normalize_optional_url(value: Optional[str]) -> Optional[str]:
    url = (value or "").strip()
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise bad_request(
            "Provide a valid absolute URL for the background image.",
            slug="invalid-url",
            title="Invalid background image URL",
        )
    return url


def normalize_theme(
    primary_color: Optional[str] = None,
    secondary_color: Optional[str] = None,
    background_image_url: Optional[str] = None,
) -> ThemeRecord:
    primary = normalize_hex_color(primary_color or DEFAULT_THEME["primary_color"])
    secondary = normalize_hex_color(secondary_color or DEFAULT_THEME["secondary_color"])
    if contrast_ratio(primary, secondary) < MIN_CONTRAST_RATIO:
        raise bad_request(
            "Primary and secondary colors must meet WCAG AA contrast requirements (>= 4.5:1).",
            slug="insufficient-contrast",
            title="Scoreboard colors lack contrast",
        )
    return ThemeRecord(primary, secondary, normalize_optional_url(background_image_url))


def normalize_registration_window(
    opens_at: Optional[datetime], closes_at: Optional[datetime]
) -> tuple[datetime, datetime]:
    if opens_at is None or closes_at is None:
        raise bad_request(
            "Dates must be valid ISO-8601 timestamps.",
            slug="invalid-date",
            title="Invalid date",
        )
    opens, closes = to_naive_utc(opens_at), to_naive_utc(closes_at)
    if opens >= closes:
        raise bad_request(
            "Registration close date must be later than the open date.",
            slug="invalid-registration-window",
            title="Registration window invalid",
        )
    return opens, closes


async def get_competition(session: AsyncSession, competition_id: int) -> Competition:
    competition = await session.get(Competition, competition_id)
    if competition is None:
        raise not_found("Competition", slug="competition-not-found")
    return competition


async def ensure_role(
    session: AsyncSession,
    user_id: int,
    role: str,
    scope_type: str = "global",
    scope_id: Optional[int] = None,
    granted_by: Optional[int] = None,
) -> UserRole:
    """Grant a role unless the user already holds it. Does not commit."""
    result = await session.execute(
        select(UserRole).where(
            UserRole.user_id == user_id,
            UserRole.role == role,
            UserRole.scope_type == scope_type,
            UserRole.scope_id.is_(None) if scope_id is None else UserRole.scope_id == scope_id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        return existing
    assignment = UserRole(
        user_id=user_id,
        role=role,
        scope_type=scope_type,
        scope_id=scope_id,
        granted_by=granted_by,
    )
    session.add(assignment)
    return assignment


async def _add_edition(
    session: AsyncSession,
    competition: Competition,
    label: str,
    slug: str,
    format: str,
    registration_opens_at: Optional[datetime],
    registration_closes_at: Optional[datetime],
    scoreboard_rotation_seconds=None,
    theme: Optional[ThemeRecord] = None,
    timezone: Optional[str] = None,
) -> tuple[Edition, EditionSettings]:
    label = normalize_name(label)
    slug = normalize_slug(slug)
    format = normalize_format(format)
    opens_at, closes_at = normalize_registration_window(registration_opens_at, registration_closes_at)
    rotation_seconds = normalize_rotation_seconds(scoreboard_rotation_seconds)
    theme = theme or normalize_theme()
    timezone = normalize_timezone(timezone or competition.default_timezone)

    result = await session.execute(
        select(Edition.id).where(Edition.competition_id == competition.id, Edition.slug == slug)
    )
    if result.scalar_one_or_none() is not None:
        raise ProblemError(
            409,
            "Edition slug already exists",
            f'An edition with slug "{slug}" already exists for this competition.',
            type="https://kickoff.app/problems/edition-slug-conflict",
        )

    edition = Edition(
        competition_id=competition.id,
        label=label,
        slug=slug,
        format=format,
        timezone=timezone,
        registration_opens_at=opens_at,
        registration_closes_at=closes_at,
    )
    session.add(edition)
    await session.flush()

    settings = EditionSettings(
        edition_id=edition.id,
        scoreboard_rotation_seconds=rotation_seconds,
        scoreboard_modules=list(DEFAULT_ROTATION),
        primary_color=theme.primary_color,
        secondary_color=theme.secondary_color,
        background_image_url=theme.background_image_url,
    )
    session.add(settings)
    await session.flush()
    return edition, settings


async def create_competition(
    session: AsyncSession,
    name: str,
    slug: str,
    default_edition: dict,
    owner_user_id: Optional[int] = None,
    default_timezone: Optional[str] = None,
    description: Optional[str] = None,
    primary_color: Optional[str] = None,
    secondary_color: Optional[str] = None,
) -> tuple[Competition, Edition, EditionSettings]:
    """Create a competition with its first edition and grant the owner competition_admin.

    default_edition holds the create_edition keyword arguments (without competition_id).
    """
    name = normalize_name(name)
    slug = normalize_slug(slug)
    timezone = normalize_timezone(default_timezone)
    description = normalize_optional_text(description)

    result = await session.execute(select(Competition.id).where(Competition.slug == slug))
    if result.scalar_one_or_none() is not None:
        raise conflict(f'The slug "{slug}" is already in use.', slug="competition-slug-conflict")

    edition_input = dict(default_edition)
    theme_input = edition_input.pop("scoreboard_theme", None) or {}
    theme = normalize_theme(
        theme_input.get("primary_color") or primary_color,
        theme_input.get("secondary_color") or secondary_color,
        theme_input.get("background_image_url"),
    )

    competition = Competition(
        name=name,
        slug=slug,
        default_timezone=timezone,
        description=description,
        primary_color=theme.primary_color,
        secondary_color=theme.secondary_color,
    )
    session.add(competition)
    await session.flush()

    if owner_user_id:
        await ensure_role(
            session,
            owner_user_id,
            "competition_admin",
            scope_type="competition",
            scope_id=competition.id,
            granted_by=owner_user_id,
        )

    edition_input.setdefault("timezone", timezone)
    edition, settings = await _add_edition(session, competition, theme=theme, **edition_input)
    await session.commit()
    logger.info("Created competition %s (id=%s) with edition %s", slug, competition.id, edition.slug)
    return competition, edition, settings


async def create_edition(
    session: AsyncSession,
    competition_id: int,
    label: str,
    slug: str,
    format: str,
    registration_opens_at: Optional[datetime],
    registration_closes_at: Optional[datetime],
    scoreboard_rotation_seconds=None,
    scoreboard_theme: Optional[dict] = None,
    timezone: Optional[str] = None,
) -> tuple[Edition, EditionSettings]:
    competition = await get_competition(session, competition_id)
    theme_input = scoreboard_theme or {}
    theme = normalize_theme(
        theme_input.get("primary_color"),
        theme_input.get("secondary_color"),
        theme_input.get("background_image_url"),
    )
    edition, settings = await _add_edition(
        session,
        competition,
        label=label,
        slug=slug,
        format=format,
        registration_opens_at=registration_opens_at,
        registration_closes_at=registration_closes_at,
        scoreboard_rotation_seconds=scoreboard_rotation_seconds,
        theme=theme,
        timezone=timezone,
    )
    await session.commit()
    return edition, settings


async def set_competition_archived(session: AsyncSession, competition_id: int, archived: bool) -> Competition:
    competition = await get_competition(session, competition_id)
    if archived:
        competition.archived_at = competition.archived_at or utcnow()
    else:
        competition.archived_at = None
    await session.commit()
    return competition
