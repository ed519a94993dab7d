"""Team API routes: teams, entry review and squads."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from kickoff.models import Entry, SquadMember, User
from kickoff.models.base import async_session_factory
from kickoff.services import teams as team_service
from kickoff.services.access import (
    assert_edition_admin_access,
    assert_entry_access,
    assert_team_access,
    has_team_scope,
    role_assignments,
)
from web.api.utils import UtcDatetime
from web.auth import require_user

router = APIRouter(prefix="/api", tags=["teams"])


class TeamCreate(BaseModel):
    name: str
    slug: Optional[str] = None


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class EntryResponse(BaseModel):
    id: int
    edition_id: int
    team_id: int
    team_name: str
    status: str
    notes: Optional[str] = None
    submitted_at: Optional[UtcDatetime] = None
    decided_at: Optional[UtcDatetime] = None
    decision_reason: Optional[str] = None


class ReviewRequest(BaseModel):
    status: str  # approved, rejected
    reason: Optional[str] = None


class SquadMemberCreate(BaseModel):
    first_name: str
    last_name: str = ""
    jersey_number: Optional[int] = None
    position: Optional[str] = None


class SquadMemberResponse(BaseModel):
    id: int
    person_id: int
    first_name: str
    last_name: str
    jersey_number: Optional[int] = None
    position: Optional[str] = None


def entry_response(entry: Entry, team_name: str) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        edition_id=entry.edition_id,
        team_id=entry.team_id,
        team_name=team_name,
        status=entry.status,
        notes=entry.notes,
        submitted_at=entry.submitted_at,
        decided_at=entry.decided_at,
        decision_reason=entry.decision_reason,
    )


def member_response(member: SquadMember) -> SquadMemberResponse:
    return SquadMemberResponse(
        id=member.id,
        person_id=member.person_id,
        first_name=member.person.first_name,
        last_name=member.person.last_name,
        jersey_number=member.jersey_number,
        position=member.position,
    )


@router.post("/teams", response_model=TeamResponse, status_code=201)
async def create_team(body: TeamCreate, user: User = Depends(require_user)):
    """Create a team. The creator becomes its manager."""
    async with async_session_factory() as session:
        team = await team_service.create_team(session, body.name, body.slug, owner_user_id=user.id)
        return TeamResponse.model_validate(team)


@router.get("/teams", response_model=list[TeamResponse])
async def list_teams(user: User = Depends(require_user)):
    """Teams the current user manages (all teams for global admins)."""
    roles = role_assignments(user)
    async with async_session_factory() as session:
        teams = await team_service.list_teams(session)
        return [TeamResponse.model_validate(t) for t in teams if has_team_scope(roles, t.id)]


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team(team_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        team = await team_service.get_team(session, team_id)
        await assert_team_access(session, user, team_id)
        return TeamResponse.model_validate(team)


@router.get("/entries/{entry_id}", response_model=EntryResponse)
async def get_entry(entry_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        entry = await assert_entry_access(session, user, entry_id)
        team = await team_service.get_team(session, entry.team_id)
        return entry_response(entry, team.name)


@router.patch("/entries/{entry_id}/review", response_model=EntryResponse)
async def review_entry(entry_id: int, body: ReviewRequest, user: User = Depends(require_user)):
    """Approve or reject a pending entry (competition admins)."""
    async with async_session_factory() as session:
        entry = await team_service.get_entry(session, entry_id)
        await assert_edition_admin_access(session, user, entry.edition_id)
        entry = await team_service.review_entry(session, entry_id, body.status, body.reason)
        team = await team_service.get_team(session, entry.team_id)
        return entry_response(entry, team.name)


@router.get("/entries/{entry_id}/squad", response_model=list[SquadMemberResponse])
async def list_squad(entry_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_entry_access(session, user, entry_id)
        members = await team_service.list_squad_members(session, entry_id)
        return [member_response(m) for m in members]


@router.post("/entries/{entry_id}/squad/members", response_model=SquadMemberResponse, status_code=201)
async def add_squad_member(entry_id: int, body: SquadMemberCreate, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_entry_access(session, user, entry_id)
        member = await team_service.add_squad_member(
            session,
            entry_id,
            first_name=body.first_name,
            last_name=body.last_name,
            jersey_number=body.jersey_number,
            position=body.position,
        )
        return member_response(member)
