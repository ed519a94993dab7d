"""Public scoreboard projection.

Resolves a published edition by slug and shapes its entries, matches,
standings and top scorers into a ScoreboardPayload. Reads go through a
ScoreboardQueries adapter so the builder can be exercised without a database.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kickoff.models import (
    Competition,
    Edition,
    EditionSettings,
    Entry,
    Match,
    MatchEvent,
    Person,
    ScoreboardHighlight,
    Squad,
    SquadMember,
    Team,
    Venue,
)
from kickoff.models.match import MATCH_STATUSES
from kickoff.problems import ProblemError, problem_type
from kickoff.services.scoreboard_types import (
    DEFAULT_ROTATION_SECONDS,
    DEFAULT_THEME,
    RegistrationWindow,
    ScoreboardEdition,
    ScoreboardEntry,
    ScoreboardMatch,
    ScoreboardMatchSide,
    ScoreboardPayload,
    ScoreboardStanding,
    ScoreboardTheme,
    ScoreboardTopScorer,
    normalize_modules,
)
from kickoff.services.slugs import EditionSelector, parse_composite_edition_slug
from kickoff.services.standings import MatchRow, ScorerEventRow, build_standings
from kickoff.services.timeutil import isoformat_utc, utcnow

logger = logging.getLogger("kickoff.scoreboard")

MATCH_STATUS_ORDER = {status: index for index, status in enumerate(MATCH_STATUSES)}
TOP_SCORER_EVENTS = {"goal", "penalty_goal", "assist", "yellow_card", "red_card"}
TOP_SCORER_LIMIT = 25
HIDDEN_ENTRY_STATUSES = ("rejected", "withdrawn")
UNKNOWN_NAME = "Unknown"


@dataclass
class EditionRow:
    id: int
    competition_id: int
    competition_slug: str
    competition_name: str
    label: str
    slug: str
    status: str
    format: str
    timezone: str
    published_at: Optional[datetime] = None
    registration_opens_at: Optional[datetime] = None
    registration_closes_at: Optional[datetime] = None
    rotation_seconds: Optional[int] = None
    modules: list = field(default_factory=list)
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    background_image_url: Optional[str] = None


@dataclass
class EntryRow:
    id: int
    name: str


class ScoreboardQueries:
    """Read-only queries backing the public scoreboard."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_edition(self, selector: EditionSelector) -> Optional[EditionRow]:
        stmt = (
            select(Edition, Competition, EditionSettings)
            .join(Competition, Competition.id == Edition.competition_id)
            .outerjoin(EditionSettings, EditionSettings.edition_id == Edition.id)
            .where(Edition.slug == selector.edition_slug)
        )
        if selector.competition_slug:
            stmt = stmt.where(Competition.slug == selector.competition_slug)
        stmt = stmt.order_by(Edition.id).limit(1)
        row = (await self.session.execute(stmt)).first()
        if not row:
            return None
        edition, competition, settings = row
        return EditionRow(
            id=edition.id,
            competition_id=competition.id,
            competition_slug=competition.slug,
            competition_name=competition.name,
            label=edition.label,
            slug=edition.slug,
            status=edition.status,
            format=edition.format,
            timezone=edition.timezone,
            published_at=edition.published_at,
            registration_opens_at=edition.registration_opens_at,
            registration_closes_at=edition.registration_closes_at,
            rotation_seconds=settings.scoreboard_rotation_seconds if settings else None,
            modules=list(settings.scoreboard_modules or []) if settings else [],
            primary_color=settings.primary_color if settings else None,
            secondary_color=settings.secondary_color if settings else None,
            background_image_url=settings.background_image_url if settings else None,
        )

    async def list_entries(self, edition_id: int) -> list[EntryRow]:
        result = await self.session.execute(
            select(Entry.id, Team.name)
            .join(Team, Team.id == Entry.team_id)
            .where(Entry.edition_id == edition_id, Entry.status.not_in(HIDDEN_ENTRY_STATUSES))
            .order_by(Team.name, Entry.id)
        )
        return [EntryRow(id=entry_id, name=name) for entry_id, name in result.all()]

    async def list_matches(self, edition_id: int) -> list[MatchRow]:
        result = await self.session.execute(
            select(Match, Venue.name)
            .outerjoin(Venue, Venue.id == Match.venue_id)
            .where(Match.edition_id == edition_id)
            .order_by(Match.kickoff_at, Match.created_at, Match.id)
        )
        return [
            MatchRow(
                id=match.id,
                status=match.status,
                kickoff_at=match.kickoff_at,
                created_at=match.created_at,
                home_entry_id=match.home_entry_id,
                away_entry_id=match.away_entry_id,
                home_score=match.home_score or 0,
                away_score=match.away_score or 0,
                venue_name=venue_name,
                code=match.code,
            )
            for match, venue_name in result.all()
        ]

    async def list_scorer_events(self, edition_id: int) -> list[ScorerEventRow]:
        result = await self.session.execute(
            select(MatchEvent.event_type, Person.id, Squad.entry_id, Person.first_name, Person.last_name)
            .join(Match, Match.id == MatchEvent.match_id)
            .join(SquadMember, SquadMember.id == MatchEvent.squad_member_id)
            .join(Squad, Squad.id == SquadMember.squad_id)
            .join(Person, Person.id == SquadMember.person_id)
            .where(Match.edition_id == edition_id)
            .order_by(MatchEvent.id)
        )
        return [
            ScorerEventRow(
                event_type=event_type,
                person_id=person_id,
                entry_id=entry_id,
                first_name=first_name,
                last_name=last_name,
            )
            for event_type, person_id, entry_id, first_name, last_name in result.all()
        ]

    async def find_active_highlight(self, edition_id: int, now: datetime) -> Optional[str]:
        result = await self.session.execute(
            select(ScoreboardHighlight.message)
            .where(
                and_(
                    ScoreboardHighlight.edition_id == edition_id,
                    ScoreboardHighlight.expires_at > now,
                )
            )
            .order_by(ScoreboardHighlight.expires_at.desc(), ScoreboardHighlight.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


def clamp_rotation_seconds(value) -> int:
    """Read-side clamp, never raises: whole seconds, at least 2; falls back to the default for missing or non-numeric input."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return DEFAULT_ROTATION_SECONDS
    return max(2, int(value))


def _resolve_selector(selector: Union[EditionSelector, str]) -> EditionSelector:
    if isinstance(selector, str):
        selector = parse_composite_edition_slug(selector)
    competition_slug = (selector.competition_slug or "").strip() or None
    return EditionSelector(competition_slug, (selector.edition_slug or "").strip())


def _edition_to_payload(row: EditionRow) -> ScoreboardEdition:
    return ScoreboardEdition(
        id=row.id,
        competition_id=row.competition_id,
        competition_slug=row.competition_slug,
        competition_name=row.competition_name,
        label=row.label,
        slug=row.slug,
        status=row.status,
        format=row.format,
        timezone=row.timezone,
        published_at=isoformat_utc(row.published_at),
        registration_window=RegistrationWindow(
            opens_at=isoformat_utc(row.registration_opens_at),
            closes_at=isoformat_utc(row.registration_closes_at),
        ),
        scoreboard_rotation_seconds=clamp_rotation_seconds(row.rotation_seconds),
        scoreboard_modules=normalize_modules(row.modules),
        scoreboard_theme=ScoreboardTheme(
            primary_color=row.primary_color or DEFAULT_THEME["primary_color"],
            secondary_color=row.secondary_color or DEFAULT_THEME["secondary_color"],
            background_image_url=row.background_image_url,
        ),
    )


def build_matches(rows: list[MatchRow], entry_names: dict[int, str]) -> list[ScoreboardMatch]:
    """Matches with both sides known, ordered by status then kickoff."""
    visible = [
        row for row in rows
        if row.home_entry_id in entry_names and row.away_entry_id in entry_names
    ]
    visible.sort(
        key=lambda row: (
            MATCH_STATUS_ORDER.get(row.status, 99),
            row.kickoff_at or row.created_at,
            row.id,
        )
    )
    return [
        ScoreboardMatch(
            id=row.id,
            status=row.status,
            kickoff_at=isoformat_utc(row.kickoff_at or row.created_at),
            code=row.code,
            venue_name=row.venue_name,
            home=ScoreboardMatchSide(
                entry_id=row.home_entry_id,
                name=entry_names[row.home_entry_id],
                score=max(row.home_score or 0, 0),
            ),
            away=ScoreboardMatchSide(
                entry_id=row.away_entry_id,
                name=entry_names[row.away_entry_id],
                score=max(row.away_score or 0, 0),
            ),
        )
        for row in visible
    ]


def _person_name(first: Optional[str], last: Optional[str]) -> str:
    return " ".join(part.strip() for part in (first, last) if part and part.strip())


def build_top_scorers(
    events: list[ScorerEventRow], entry_names: dict[int, str]
) -> list[ScoreboardTopScorer]:
    scorers: dict[tuple[int, int], ScoreboardTopScorer] = {}
    for event in events:
        if not event.entry_id or not event.person_id:
            continue
        if event.event_type not in TOP_SCORER_EVENTS:
            continue
        key = (event.entry_id, event.person_id)
        scorer = scorers.get(key)
        if scorer is None:
            name = (
                _person_name(event.first_name, event.last_name)
                or entry_names.get(event.entry_id)
                or UNKNOWN_NAME
            )
            scorer = ScoreboardTopScorer(person_id=event.person_id, entry_id=event.entry_id, name=name)
            scorers[key] = scorer
        if event.event_type in ("goal", "penalty_goal"):
            scorer.goals += 1
        elif event.event_type == "assist":
            scorer.assists += 1
        elif event.event_type == "yellow_card":
            scorer.yellow_cards += 1
        elif event.event_type == "red_card":
            scorer.red_cards += 1

    ordered = sorted(
        scorers.values(),
        key=lambda s: (-s.goals, s.name.casefold(), s.entry_id, s.person_id),
    )
    return ordered[:TOP_SCORER_LIMIT]


async def build_public_scoreboard(
    selector: Union[EditionSelector, str],
    queries: ScoreboardQueries,
    now: Optional[datetime] = None,
) -> ScoreboardPayload:
    """Build the public scoreboard for a published edition.

    selector is either an EditionSelector or a composite "competition/edition" slug.
    Raises ProblemError 400 on a blank edition slug and 404 when the edition is
    unknown or not published.
    """
    resolved = _resolve_selector(selector)
    if not resolved.edition_slug:
        raise ProblemError(
            400,
            "Invalid slug",
            "The edition slug must be provided.",
            type=problem_type("scoreboard/invalid-slug"),
        )

    edition = await queries.find_edition(resolved)
    if edition is None or edition.status != "published":
        logger.info(
            "scoreboard_edition_not_found competition=%s edition=%s",
            resolved.competition_slug,
            resolved.edition_slug,
        )
        raise ProblemError(
            404,
            "Edition not found",
            "Check the scoreboard URL and try again.",
            type=problem_type("scoreboard/edition-not-found"),
        )

    entries = await queries.list_entries(edition.id)
    matches = await queries.list_matches(edition.id)
    events = await queries.list_scorer_events(edition.id)
    overlay = await queries.find_active_highlight(edition.id, now or utcnow())

    entry_names = {entry.id: entry.name for entry in entries}

    standings = [
        ScoreboardStanding(
            entry_id=row.entry_id,
            position=position,
            played=row.played,
            won=row.won,
            drawn=row.drawn,
            lost=row.lost,
            goals_for=row.goals_for,
            goals_against=row.goals_against,
            goal_difference=row.goal_difference,
            points=row.points,
            fair_play_score=row.fair_play_score,
        )
        for position, row in build_standings(matches, events, entry_names)
    ]
    edition_payload = _edition_to_payload(edition)

    return ScoreboardPayload(
        edition=edition_payload,
        matches=build_matches(matches, entry_names),
        standings=standings,
        top_scorers=build_top_scorers(events, entry_names),
        rotation=list(edition_payload.scoreboard_modules),
        overlay_message=overlay,
        entries=[ScoreboardEntry(id=entry.id, name=entry.name) for entry in entries],
    )
