"""Teams, their entries into editions, and entry squads."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kickoff.models import Entry, Person, Squad, SquadMember, Team
from kickoff.problems import ProblemError, bad_request, conflict, not_found
from kickoff.services.competitions import ensure_role, normalize_name, normalize_optional_text
from kickoff.services.editions import get_edition, get_edition_settings
from kickoff.services.event_feed import record_event
from kickoff.services.slugs import normalize_slug
from kickoff.services.timeutil import utcnow

logger = logging.getLogger("kickoff.teams")

REVIEW_STATUSES = ("approved", "rejected")


async def create_team(
    session: AsyncSession, name: str, slug: Optional[str] = None, owner_user_id: Optional[int] = None
) -> Team:
    """Create a team; the creating user becomes its team_manager."""
    name = normalize_name(name)
    slug = normalize_slug(slug or name)
    result = await session.execute(select(Team.id).where(Team.slug == slug))
    if result.scalar_one_or_none() is not None:
        raise conflict(f'The slug "{slug}" is already in use.', slug="team-slug-conflict")
    team = Team(name=name, slug=slug)
    session.add(team)
    await session.flush()
    if owner_user_id:
        await ensure_role(
            session, owner_user_id, "team_manager", scope_type="team", scope_id=team.id, granted_by=owner_user_id
        )
    await session.commit()
    return team


async def get_team(session: AsyncSession, team_id: int) -> Team:
    team = await session.get(Team, team_id)
    if team is None:
        raise not_found("Team", slug="team-not-found")
    return team


async def list_teams(session: AsyncSession) -> list[Team]:
    result = await session.execute(select(Team).order_by(Team.name, Team.id))
    return list(result.scalars().all())


async def get_entry(session: AsyncSession, entry_id: int) -> Entry:
    entry = await session.get(Entry, entry_id)
    if entry is None:
        raise not_found("Entry", slug="entry-not-found")
    return entry


async def list_edition_entries(session: AsyncSession, edition_id: int) -> list[tuple[Entry, Team]]:
    await get_edition(session, edition_id)
    result = await session.execute(
        select(Entry, Team)
        .join(Team, Team.id == Entry.team_id)
        .where(Entry.edition_id == edition_id)
        .order_by(Entry.submitted_at, Entry.id)
    )
    return [(entry, team) for entry, team in result.all()]


def _entry_snapshot(entry: Entry) -> dict:
    return {"entry_id": entry.id, "team_id": entry.team_id, "status": entry.status}


async def create_entry(
    session: AsyncSession, edition_id: int, team_id: int, notes: Optional[str] = None
) -> Entry:
    """Register a team for an edition while registration is open and entries are not locked."""
    edition = await get_edition(session, edition_id)
    settings = await get_edition_settings(session, edition_id)
    await get_team(session, team_id)

    now = utcnow()
    if edition.registration_opens_at and now < edition.registration_opens_at:
        raise bad_request(
            "Registration for this edition has not opened yet.",
            slug="entry/registration-not-open",
            title="Registration not open",
        )
    if edition.registration_closes_at and now > edition.registration_closes_at:
        raise bad_request(
            "The registration deadline for this edition has passed.",
            slug="entry/registration-closed",
            title="Registration closed",
        )
    if settings.entries_locked_at:
        raise bad_request(
            "Entries are locked for this edition. Contact an administrator if you need help.",
            slug="entry/entries-locked",
            title="Entries locked",
        )

    existing = await session.execute(
        select(Entry.id).where(Entry.edition_id == edition_id, Entry.team_id == team_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise ProblemError(
            409,
            "Entry already exists",
            "The team is already registered for this edition.",
            type="https://kickoff.app/problems/entry-existing",
        )

    entry = Entry(
        edition_id=edition_id,
        team_id=team_id,
        status="pending",
        notes=normalize_optional_text(notes),
        submitted_at=now,
    )
    session.add(entry)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise ProblemError(
            409,
            "Entry already exists",
            "The team is already registered for this edition.",
            type="https://kickoff.app/problems/entry-existing",
        ) from None
    record_event(session, edition_id, "entry", "created", _entry_snapshot(entry))
    await session.commit()
    logger.info("Team %s entered edition %s (entry=%s)", team_id, edition_id, entry.id)
    return entry


async def review_entry(
    session: AsyncSession, entry_id: int, status: str, reason: Optional[str] = None
) -> Entry:
    """Approve or reject a pending entry. Entries already decided are returned as-is."""
    if status not in REVIEW_STATUSES:
        raise bad_request(
            f'Review status "{status}" is not supported.',
            slug="entry/invalid-review-status",
            title="Invalid review status",
        )
    entry = await get_entry(session, entry_id)
    if entry.status != "pending":
        return entry
    entry.status = status
    entry.decided_at = utcnow()
    entry.decision_reason = normalize_optional_text(reason)
    record_event(session, entry.edition_id, "entry", status, _entry_snapshot(entry))
    await session.commit()
    return entry


async def ensure_squad(session: AsyncSession, entry_id: int) -> Squad:
    entry = await get_entry(session, entry_id)
    result = await session.execute(select(Squad).where(Squad.entry_id == entry.id))
    squad = result.scalar_one_or_none()
    if squad is None:
        squad = Squad(entry_id=entry.id)
        session.add(squad)
        await session.commit()
    return squad


async def list_squad_members(session: AsyncSession, entry_id: int) -> list[SquadMember]:
    squad = await ensure_squad(session, entry_id)
    result = await session.execute(
        select(SquadMember)
        .options(selectinload(SquadMember.person))
        .where(SquadMember.squad_id == squad.id)
        .order_by(SquadMember.jersey_number, SquadMember.id)
    )
    return list(result.scalars().all())


async def add_squad_member(
    session: AsyncSession,
    entry_id: int,
    first_name: str,
    last_name: str = "",
    jersey_number: Optional[int] = None,
    position: Optional[str] = None,
) -> SquadMember:
    if jersey_number is not None and jersey_number < 0:
        raise bad_request("Jersey number must be zero or greater.", slug="squad/invalid-jersey-number")
    squad = await ensure_squad(session, entry_id)
    person = Person(first_name=normalize_name(first_name), last_name=(last_name or "").strip())
    member = SquadMember(
        squad_id=squad.id,
        person=person,
        jersey_number=jersey_number,
        position=normalize_optional_text(position),
    )
    session.add(member)
    await session.commit()
    return member
