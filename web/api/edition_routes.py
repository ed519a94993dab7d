"""Edition API routes: status, scoreboard control, entries and matches."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from kickoff.models import User
from kickoff.models.base import async_session_factory
from kickoff.services import editions as edition_service
from kickoff.services import matches as match_service
from kickoff.services import teams as team_service
from kickoff.services.access import assert_edition_admin_access, assert_team_entry_create_access
from kickoff.services.editions import EditionScoreboardSummary
from web.api.competition_routes import EditionResponse, ThemeInput
from web.api.match_routes import MatchResponse
from web.api.team_routes import EntryResponse, entry_response
from web.auth import require_user

router = APIRouter(prefix="/api/editions", tags=["editions"])


class StatusUpdate(BaseModel):
    status: str  # draft, published, archived


class ScoreboardSettingsUpdate(BaseModel):
    scoreboard_rotation_seconds: Optional[float] = None
    scoreboard_modules: Optional[list[str]] = None
    scoreboard_theme: Optional[ThemeInput] = None
    entries_locked: Optional[bool] = None


class HighlightCreate(BaseModel):
    message: str
    duration_seconds: float


class EntryCreate(BaseModel):
    team_id: int
    notes: Optional[str] = None


class MatchCreate(BaseModel):
    home_entry_id: int
    away_entry_id: int
    kickoff_at: Optional[datetime] = None
    venue_id: Optional[int] = None
    code: Optional[str] = None


@router.get("/{edition_id}", response_model=EditionResponse)
async def get_edition(edition_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        edition = await assert_edition_admin_access(session, user, edition_id)
        return EditionResponse.model_validate(edition)


@router.patch("/{edition_id}/status", response_model=EditionResponse)
async def update_status(edition_id: int, body: StatusUpdate, user: User = Depends(require_user)):
    """Publish, unpublish or archive an edition. Only published editions are public."""
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        edition = await edition_service.update_edition_status(session, edition_id, body.status)
        return EditionResponse.model_validate(edition)


@router.get("/{edition_id}/scoreboard", response_model=EditionScoreboardSummary)
async def get_scoreboard_summary(edition_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        return await edition_service.get_edition_scoreboard_summary(session, edition_id)


@router.patch("/{edition_id}/scoreboard", response_model=EditionScoreboardSummary)
async def update_scoreboard_settings(
    edition_id: int, body: ScoreboardSettingsUpdate, user: User = Depends(require_user)
):
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        return await edition_service.update_edition_scoreboard_settings(
            session,
            edition_id,
            scoreboard_rotation_seconds=body.scoreboard_rotation_seconds,
            scoreboard_modules=body.scoreboard_modules,
            scoreboard_theme=body.scoreboard_theme.model_dump() if body.scoreboard_theme else None,
            entries_locked=body.entries_locked,
        )


@router.post("/{edition_id}/scoreboard/highlight", response_model=EditionScoreboardSummary)
async def trigger_highlight(edition_id: int, body: HighlightCreate, user: User = Depends(require_user)):
    """Show an overlay message on the public scoreboard."""
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        return await edition_service.trigger_scoreboard_highlight(
            session, edition_id, body.message, body.duration_seconds, actor_id=user.id
        )


@router.delete("/{edition_id}/scoreboard/highlight", response_model=EditionScoreboardSummary)
async def clear_highlight(edition_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        return await edition_service.clear_scoreboard_highlight(session, edition_id)


@router.get("/{edition_id}/entries", response_model=list[EntryResponse])
async def list_entries(edition_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        rows = await team_service.list_edition_entries(session, edition_id)
        return [entry_response(entry, team.name) for entry, team in rows]


@router.post("/{edition_id}/entries", response_model=EntryResponse, status_code=201)
async def create_entry(edition_id: int, body: EntryCreate, user: User = Depends(require_user)):
    """Register a team. Team managers enter their own team; competition admins any team."""
    async with async_session_factory() as session:
        await assert_team_entry_create_access(session, user, body.team_id, edition_id)
        entry = await team_service.create_entry(session, edition_id, body.team_id, body.notes)
        team = await team_service.get_team(session, entry.team_id)
        return entry_response(entry, team.name)


@router.get("/{edition_id}/matches", response_model=list[MatchResponse])
async def list_matches(edition_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        matches = await match_service.list_matches(session, edition_id)
        return [MatchResponse.model_validate(m) for m in matches]


@router.post("/{edition_id}/matches", response_model=MatchResponse, status_code=201)
async def create_match(edition_id: int, body: MatchCreate, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        await assert_edition_admin_access(session, user, edition_id)
        match = await match_service.create_match(
            session,
            edition_id,
            home_entry_id=body.home_entry_id,
            away_entry_id=body.away_entry_id,
            kickoff_at=body.kickoff_at,
            venue_id=body.venue_id,
            code=body.code,
        )
        return MatchResponse.model_validate(match)
