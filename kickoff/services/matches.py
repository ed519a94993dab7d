"""Match scheduling, results and in-match events."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kickoff.models import Entry, Match, MatchEvent, Squad, SquadMember, Venue
from kickoff.models.match import MATCH_EVENT_TYPES, MATCH_STATUSES
from kickoff.problems import ProblemError, bad_request, not_found
from kickoff.services.editions import get_edition
from kickoff.services.event_feed import record_event
from kickoff.services.timeutil import isoformat_utc, to_naive_utc, utcnow

logger = logging.getLogger("kickoff.matches")

_UNSET = object()


def _match_snapshot(match: Match, schedule_change: bool = False) -> dict:
    return {
        "match_id": match.id,
        "status": match.status,
        "home_entry_id": match.home_entry_id,
        "away_entry_id": match.away_entry_id,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "kickoff_at": isoformat_utc(match.kickoff_at),
        "schedule_change": schedule_change,
    }


def _validate_status(status: str) -> str:
    if status not in MATCH_STATUSES:
        raise bad_request(f'Match status "{status}" is not supported.', slug="match/invalid-status")
    return status


def _validate_score(value: int, field: str) -> int:
    if value < 0:
        raise bad_request(f"{field} must be zero or greater.", slug="match/invalid-score")
    return value


async def get_match(session: AsyncSession, match_id: int) -> Match:
    match = await session.get(Match, match_id)
    if match is None:
        raise not_found("Match", slug="match-not-found")
    return match


async def list_matches(session: AsyncSession, edition_id: int) -> list[Match]:
    await get_edition(session, edition_id)
    result = await session.execute(
        select(Match).where(Match.edition_id == edition_id).order_by(Match.kickoff_at, Match.created_at, Match.id)
    )
    return list(result.scalars().all())


async def _check_venue(session: AsyncSession, venue_id: Optional[int], competition_id: int) -> None:
    if venue_id is None:
        return
    venue = await session.get(Venue, venue_id)
    if venue is None or venue.competition_id != competition_id:
        raise bad_request("The venue does not belong to this competition.", slug="match/invalid-venue")


async def create_match(
    session: AsyncSession,
    edition_id: int,
    home_entry_id: int,
    away_entry_id: int,
    kickoff_at: Optional[datetime] = None,
    venue_id: Optional[int] = None,
    code: Optional[str] = None,
) -> Match:
    edition = await get_edition(session, edition_id)
    if home_entry_id == away_entry_id:
        raise bad_request("A match needs two different entries.", slug="match/same-entry")
    result = await session.execute(
        select(Entry.id).where(Entry.edition_id == edition_id, Entry.id.in_([home_entry_id, away_entry_id]))
    )
    if len(set(result.scalars().all())) != 2:
        raise bad_request("Both entries must belong to this edition.", slug="match/entry-not-in-edition")
    await _check_venue(session, venue_id, edition.competition_id)

    match = Match(
        edition_id=edition_id,
        home_entry_id=home_entry_id,
        away_entry_id=away_entry_id,
        kickoff_at=to_naive_utc(kickoff_at),
        venue_id=venue_id,
        code=(code or "").strip() or None,
        status="scheduled",
        home_score=0,
        away_score=0,
        created_at=utcnow(),
    )
    session.add(match)
    await session.flush()
    record_event(session, edition_id, "match", "created", _match_snapshot(match, schedule_change=True))
    await session.commit()
    return match


async def update_match(
    session: AsyncSession,
    match_id: int,
    status: Optional[str] = None,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    kickoff_at=_UNSET,
    venue_id=_UNSET,
) -> Match:
    """Update result, status, kickoff or venue. kickoff_at/venue_id accept None to clear."""
    match = await get_match(session, match_id)
    if status is not None:
        match.status = _validate_status(status)
    if home_score is not None:
        match.home_score = _validate_score(home_score, "Home score")
    if away_score is not None:
        match.away_score = _validate_score(away_score, "Away score")

    schedule_change = False
    if kickoff_at is not _UNSET:
        new_kickoff = to_naive_utc(kickoff_at)
        schedule_change = new_kickoff != match.kickoff_at
        match.kickoff_at = new_kickoff
    if venue_id is not _UNSET:
        edition = await get_edition(session, match.edition_id)
        await _check_venue(session, venue_id, edition.competition_id)
        schedule_change = schedule_change or venue_id != match.venue_id
        match.venue_id = venue_id

    record_event(session, match.edition_id, "match", "updated", _match_snapshot(match, schedule_change))
    await session.commit()
    logger.info("Match %s updated: status=%s score=%s-%s", match.id, match.status, match.home_score, match.away_score)
    return match


async def record_match_event(
    session: AsyncSession,
    match_id: int,
    squad_member_id: int,
    event_type: str,
    minute: Optional[int] = None,
) -> MatchEvent:
    """Attach a goal, assist or card to a squad member playing for one of the match's entries."""
    if event_type not in MATCH_EVENT_TYPES:
        raise bad_request(f'Event type "{event_type}" is not supported.', slug="match/invalid-event-type")
    if minute is not None and minute < 0:
        raise bad_request("Minute must be zero or greater.", slug="match/invalid-minute")
    match = await get_match(session, match_id)
    result = await session.execute(
        select(Squad.entry_id)
        .join(SquadMember, SquadMember.squad_id == Squad.id)
        .where(SquadMember.id == squad_member_id)
    )
    entry_id = result.scalar_one_or_none()
    if entry_id is None:
        raise not_found("Squad member", slug="squad-member-not-found")
    if entry_id not in (match.home_entry_id, match.away_entry_id):
        raise ProblemError(
            409,
            "Entry not part of this match",
            "The squad member's entry is not playing in this match.",
            type="https://kickoff.app/problems/match/entry-not-in-match",
        )

    event = MatchEvent(
        match_id=match.id,
        squad_member_id=squad_member_id,
        event_type=event_type,
        minute=minute,
        created_at=utcnow(),
    )
    session.add(event)
    record_event(
        session,
        match.edition_id,
        "match",
        "event_recorded",
        {**_match_snapshot(match), "event_type": event_type, "entry_id": entry_id, "minute": minute},
    )
    await session.commit()
    return event
