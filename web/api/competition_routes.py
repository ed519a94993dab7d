"""Competition API routes: competitions, their editions and venues."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select

from kickoff.models import Competition, User
from kickoff.models.base import async_session_factory
from kickoff.services import competitions as competition_service
from kickoff.services import editions as edition_service
from kickoff.services.access import assert_competition_admin_access, has_competition_scope, role_assignments
from web.api.utils import UtcDatetime
from web.auth import require_user

router = APIRouter(prefix="/api/competitions", tags=["competitions"])


# --- Pydantic schemas ---


class ThemeInput(BaseModel):
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    background_image_url: Optional[str] = None


class EditionCreate(BaseModel):
    label: str
    slug: str
    format: str = "round_robin"
    registration_opens_at: datetime
    registration_closes_at: datetime
    scoreboard_rotation_seconds: Optional[float] = None
    scoreboard_theme: Optional[ThemeInput] = None
    timezone: Optional[str] = None

    def service_kwargs(self) -> dict:
        data = self.model_dump(exclude={"scoreboard_theme"})
        data["scoreboard_theme"] = self.scoreboard_theme.model_dump() if self.scoreboard_theme else None
        return data


class CompetitionCreate(BaseModel):
    name: str
    slug: str
    default_timezone: Optional[str] = None
    description: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    default_edition: EditionCreate


class ArchiveRequest(BaseModel):
    archived: bool


class VenueCreate(BaseModel):
    name: str
    address: Optional[str] = None


class CompetitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    default_timezone: str
    description: Optional[str] = None
    primary_color: str
    secondary_color: str
    archived_at: Optional[UtcDatetime] = None


class EditionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    competition_id: int
    label: str
    slug: str
    status: str
    format: str
    timezone: str
    registration_opens_at: Optional[UtcDatetime] = None
    registration_closes_at: Optional[UtcDatetime] = None
    published_at: Optional[UtcDatetime] = None


class CompetitionCreated(BaseModel):
    competition: CompetitionResponse
    edition: EditionResponse


class VenueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    competition_id: int
    name: str
    address: Optional[str] = None


# --- Routes ---


@router.post("", response_model=CompetitionCreated, status_code=201)
async def create_competition(body: CompetitionCreate, user: User = Depends(require_user)):
    """Create a competition with its first edition. The creator administers it."""
    async with async_session_factory() as session:
        competition, edition, _ = await competition_service.create_competition(
            session,
            name=body.name,
            slug=body.slug,
            default_edition=body.default_edition.service_kwargs(),
            owner_user_id=user.id,
            default_timezone=body.default_timezone,
            description=body.description,
            primary_color=body.primary_color,
            secondary_color=body.secondary_color,
        )
        return CompetitionCreated(
            competition=CompetitionResponse.model_validate(competition),
            edition=EditionResponse.model_validate(edition),
        )


@router.get("", response_model=list[CompetitionResponse])
async def list_competitions(user: User = Depends(require_user)):
    """Competitions the current user administers."""
    roles = role_assignments(user)
    async with async_session_factory() as session:
        result = await session.execute(select(Competition).order_by(Competition.name, Competition.id))
        return [
            CompetitionResponse.model_validate(c)
            for c in result.scalars().all()
            if has_competition_scope(roles, c.id)
        ]


@router.get("/{competition_id}", response_model=CompetitionResponse)
async def get_competition(competition_id: int, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        competition = await competition_service.get_competition(session, competition_id)
        assert_competition_admin_access(user, competition.id)
        return CompetitionResponse.model_validate(competition)


@router.patch("/{competition_id}/archive", response_model=CompetitionResponse)
async def set_archived(competition_id: int, body: ArchiveRequest, user: User = Depends(require_user)):
    """Archive or restore a competition."""
    assert_competition_admin_access(user, competition_id)
    async with async_session_factory() as session:
        competition = await competition_service.set_competition_archived(session, competition_id, body.archived)
        return CompetitionResponse.model_validate(competition)


@router.get("/{competition_id}/editions", response_model=list[EditionResponse])
async def list_editions(competition_id: int, user: User = Depends(require_user)):
    assert_competition_admin_access(user, competition_id)
    async with async_session_factory() as session:
        await competition_service.get_competition(session, competition_id)
        editions = await edition_service.list_editions(session, competition_id)
        return [EditionResponse.model_validate(e) for e in editions]


@router.post("/{competition_id}/editions", response_model=EditionResponse, status_code=201)
async def create_edition(competition_id: int, body: EditionCreate, user: User = Depends(require_user)):
    assert_competition_admin_access(user, competition_id)
    async with async_session_factory() as session:
        edition, _ = await competition_service.create_edition(
            session, competition_id=competition_id, **body.service_kwargs()
        )
        return EditionResponse.model_validate(edition)


@router.get("/{competition_id}/venues", response_model=list[VenueResponse])
async def list_venues(competition_id: int, user: User = Depends(require_user)):
    assert_competition_admin_access(user, competition_id)
    async with async_session_factory() as session:
        venues = await edition_service.list_venues(session, competition_id)
        return [VenueResponse.model_validate(v) for v in venues]


@router.post("/{competition_id}/venues", response_model=VenueResponse, status_code=201)
async def create_venue(competition_id: int, body: VenueCreate, user: User = Depends(require_user)):
    assert_competition_admin_access(user, competition_id)
    async with async_session_factory() as session:
        venue = await edition_service.create_venue(session, competition_id, body.name, body.address)
        return VenueResponse.model_validate(venue)
