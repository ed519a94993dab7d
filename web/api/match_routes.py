"""Match API routes: results, schedule changes and match events."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from kickoff.models import User
from kickoff.models.base import async_session_factory
from kickoff.services import matches as match_service
from kickoff.services.access import assert_edition_admin_access
from web.api.utils import UtcDatetime
from web.auth import require_user

router = APIRouter(prefix="/api/matches", tags=["matches"])


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    edition_id: int
    code: Optional[str] = None
    status: str
    kickoff_at: Optional[UtcDatetime] = None
    home_entry_id: Optional[int] = None
    away_entry_id: Optional[int] = None
    home_score: int
    away_score: int
    venue_id: Optional[int] = None


class MatchUpdate(BaseModel):
    status: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    kickoff_at: Optional[datetime] = None
    venue_id: Optional[int] = None


class MatchEventCreate(BaseModel):
    squad_member_id: int
    event_type: str  # goal, penalty_goal, own_goal, assist, yellow_card, red_card
    minute: Optional[int] = None


class MatchEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    match_id: int
    squad_member_id: int
    event_type: str
    minute: Optional[int] = None
    created_at: UtcDatetime


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(match_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        match = await match_service.get_match(session, match_id)
        await assert_edition_admin_access(session, user, match.edition_id)
        return MatchResponse.model_validate(match)


@router.patch("/{match_id}", response_model=MatchResponse)
async def update_match(match_id: int, body: MatchUpdate, user: User = Depends(require_user)):
    """Update score, status, kickoff or venue. Omitted fields are left unchanged."""
    async with async_session_factory() as session:
        match = await match_service.get_match(session, match_id)
        await assert_edition_admin_access(session, user, match.edition_id)
        # kickoff_at/venue_id may be sent as null to clear them
        clearable = body.model_dump(include={"kickoff_at", "venue_id"}, exclude_unset=True)
        match = await match_service.update_match(
            session,
            match_id,
            status=body.status,
            home_score=body.home_score,
            away_score=body.away_score,
            **clearable,
        )
        return MatchResponse.model_validate(match)


@router.post("/{match_id}/events", response_model=MatchEventResponse, status_code=201)
async def record_event(match_id: int, body: MatchEventCreate, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        match = await match_service.get_match(session, match_id)
        await assert_edition_admin_access(session, user, match.edition_id)
        event = await match_service.record_match_event(
            session, match_id, body.squad_member_id, body.event_type, body.minute
        )
        return MatchEventResponse.model_validate(event)
