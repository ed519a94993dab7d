"""Edition status, scoreboard settings, highlights and venues."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from kickoff.models import Competition, Edition, EditionSettings, ScoreboardHighlight, Venue
from kickoff.models.competition import EDITION_STATUSES
from kickoff.problems import ProblemError, bad_request, not_found
from kickoff.services.competitions import get_competition, normalize_name, normalize_rotation_seconds, normalize_theme
from kickoff.services.scoreboard_types import DEFAULT_THEME, ScoreboardTheme, normalize_modules
from kickoff.services.timeutil import isoformat_utc, utcnow

logger = logging.getLogger("kickoff.editions")

MIN_HIGHLIGHT_DURATION = 5
MAX_HIGHLIGHT_DURATION = 600
MAX_HIGHLIGHT_LENGTH = 160


class HighlightSummary(BaseModel):
    message: str
    expires_at: str
    remaining_seconds: int


class EditionScoreboardSummary(BaseModel):
    edition_id: int
    label: str
    status: str
    scoreboard_rotation_seconds: int
    scoreboard_modules: list[str]
    entries_locked_at: Optional[str] = None
    scoreboard_theme: ScoreboardTheme
    highlight: Optional[HighlightSummary] = None


async def get_edition(session: AsyncSession, edition_id: int) -> Edition:
    edition = await session.get(Edition, edition_id)
    if edition is None:
        raise not_found("Edition", slug="edition-not-found")
    return edition


async def get_edition_settings(session: AsyncSession, edition_id: int) -> EditionSettings:
    result = await session.execute(select(EditionSettings).where(EditionSettings.edition_id == edition_id))
    settings = result.scalar_one_or_none()
    if settings is None:
        raise ProblemError(
            500,
            "Edition settings missing",
            "This edition has no settings and cannot be updated.",
        )
    return settings


async def list_editions(session: AsyncSession, competition_id: int) -> list[Edition]:
    result = await session.execute(
        select(Edition).where(Edition.competition_id == competition_id).order_by(Edition.created_at, Edition.id)
    )
    return list(result.scalars().all())


async def update_edition_status(session: AsyncSession, edition_id: int, status: str) -> Edition:
    """Move an edition between draft, published and archived. Publishing stamps published_at once."""
    if status not in EDITION_STATUSES:
        raise bad_request(
            f'Edition status "{status}" is not supported.',
            slug="invalid-edition-status",
            title="Edition status not supported",
        )
    edition = await get_edition(session, edition_id)
    edition.status = status
    if status == "published" and edition.published_at is None:
        edition.published_at = utcnow()
    await session.commit()
    logger.info("Edition %s status set to %s", edition_id, status)
    return edition


async def _active_highlight(
    session: AsyncSession, edition_id: int, now: datetime
) -> Optional[ScoreboardHighlight]:
    result = await session.execute(
        select(ScoreboardHighlight)
        .where(ScoreboardHighlight.edition_id == edition_id, ScoreboardHighlight.expires_at > now)
        .order_by(ScoreboardHighlight.expires_at.desc(), ScoreboardHighlight.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _expire_active_highlights(session: AsyncSession, edition_id: int, now: datetime) -> None:
    await session.execute(
        update(ScoreboardHighlight)
        .where(ScoreboardHighlight.edition_id == edition_id, ScoreboardHighlight.expires_at > now)
        .values(expires_at=now)
    )


async def get_edition_scoreboard_summary(session: AsyncSession, edition_id: int) -> EditionScoreboardSummary:
    edition = await get_edition(session, edition_id)
    settings = await get_edition_settings(session, edition_id)
    now = utcnow()
    highlight = await _active_highlight(session, edition_id, now)
    return EditionScoreboardSummary(
        edition_id=edition.id,
        label=edition.label,
        status=edition.status,
        scoreboard_rotation_seconds=settings.scoreboard_rotation_seconds,
        scoreboard_modules=normalize_modules(settings.scoreboard_modules),
        entries_locked_at=isoformat_utc(settings.entries_locked_at),
        scoreboard_theme=ScoreboardTheme(
            primary_color=settings.primary_color or DEFAULT_THEME["primary_color"],
            secondary_color=settings.secondary_color or DEFAULT_THEME["secondary_color"],
            background_image_url=settings.background_image_url,
        ),
        highlight=HighlightSummary(
            message=highlight.message,
            expires_at=isoformat_utc(highlight.expires_at),
            remaining_seconds=max(0, math.ceil((highlight.expires_at - now).total_seconds())),
        )
        if highlight
        else None,
    )


async def update_edition_scoreboard_settings(
    session: AsyncSession,
    edition_id: int,
    scoreboard_rotation_seconds=None,
    scoreboard_modules: Optional[list[str]] = None,
    scoreboard_theme: Optional[dict] = None,
    entries_locked: Optional[bool] = None,
) -> EditionScoreboardSummary:
    """Apply the fields that are not None and return the refreshed summary."""
    await get_edition(session, edition_id)
    settings = await get_edition_settings(session, edition_id)

    if scoreboard_rotation_seconds is not None:
        settings.scoreboard_rotation_seconds = normalize_rotation_seconds(scoreboard_rotation_seconds)
    if scoreboard_modules is not None:
        settings.scoreboard_modules = normalize_modules(scoreboard_modules)
    if scoreboard_theme is not None:
        theme = normalize_theme(
            scoreboard_theme.get("primary_color"),
            scoreboard_theme.get("secondary_color"),
            scoreboard_theme.get("background_image_url"),
        )
        settings.primary_color = theme.primary_color
        settings.secondary_color = theme.secondary_color
        settings.background_image_url = theme.background_image_url
    if entries_locked is not None:
        settings.entries_locked_at = (settings.entries_locked_at or utcnow()) if entries_locked else None

    await session.commit()
    return await get_edition_scoreboard_summary(session, edition_id)


async def trigger_scoreboard_highlight(
    session: AsyncSession,
    edition_id: int,
    message: str,
    duration_seconds,
    actor_id: Optional[int] = None,
) -> EditionScoreboardSummary:
    """Show an overlay message for duration_seconds, replacing any active one."""
    text = (message or "").strip()
    if not text:
        raise bad_request(
            "Enter the text to show on the scoreboard.",
            slug="scoreboard/empty-highlight",
            title="Message cannot be empty",
        )
    if len(text) > MAX_HIGHLIGHT_LENGTH:
        raise bad_request(
            f"A highlight can be at most {MAX_HIGHLIGHT_LENGTH} characters.",
            slug="scoreboard/highlight-too-long",
            title="Message is too long",
        )
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, (int, float)) \
            or not math.isfinite(duration_seconds):
        duration = None
    else:
        duration = round(duration_seconds)
    if duration is None or not MIN_HIGHLIGHT_DURATION <= duration <= MAX_HIGHLIGHT_DURATION:
        raise bad_request(
            f"Duration must be between {MIN_HIGHLIGHT_DURATION} and {MAX_HIGHLIGHT_DURATION} seconds.",
            slug="scoreboard/invalid-duration",
            title="Invalid duration",
        )

    edition = await get_edition(session, edition_id)
    now = utcnow()
    await _expire_active_highlights(session, edition.id, now)
    session.add(
        ScoreboardHighlight(
            edition_id=edition.id,
            message=text,
            duration_seconds=duration,
            expires_at=now + timedelta(seconds=duration),
            created_by=actor_id,
            created_at=now,
        )
    )
    await session.commit()
    return await get_edition_scoreboard_summary(session, edition.id)


async def clear_scoreboard_highlight(session: AsyncSession, edition_id: int) -> EditionScoreboardSummary:
    edition = await get_edition(session, edition_id)
    await _expire_active_highlights(session, edition.id, utcnow())
    await session.commit()
    return await get_edition_scoreboard_summary(session, edition.id)


async def create_venue(
    session: AsyncSession, competition_id: int, name: str, address: Optional[str] = None
) -> Venue:
    competition: Competition = await get_competition(session, competition_id)
    venue = Venue(
        competition_id=competition.id,
        name=normalize_name(name),
        address=(address or "").strip() or None,
    )
    session.add(venue)
    await session.commit()
    return venue


async def list_venues(session: AsyncSession, competition_id: int) -> list[Venue]:
    await get_competition(session, competition_id)
    result = await session.execute(
        select(Venue).where(Venue.competition_id == competition_id).order_by(Venue.name, Venue.id)
    )
    return list(result.scalars().all())
