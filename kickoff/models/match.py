"""Venues, matches and in-match events."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kickoff.models.base import Base
from kickoff.services.timeutil import utcnow

# Match status values, in scoreboard display order
MATCH_STATUSES = ("in_progress", "disputed", "scheduled", "finalized")
MATCH_EVENT_TYPES = ("goal", "penalty_goal", "own_goal", "assist", "yellow_card", "red_card")


class Venue(Base):
    """Pitch or hall belonging to a competition."""

    __tablename__ = "venues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    competition = relationship("Competition", back_populates="venues")


class Match(Base):
    """Single match between two entries of an edition."""

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    edition_id: Mapped[int] = mapped_column(ForeignKey("editions.id"), nullable=False, index=True)
    code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="scheduled")
    kickoff_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    home_entry_id: Mapped[Optional[int]] = mapped_column(ForeignKey("entries.id"), nullable=True)
    away_entry_id: Mapped[Optional[int]] = mapped_column(ForeignKey("entries.id"), nullable=True)
    home_score: Mapped[int] = mapped_column(Integer, default=0)
    away_score: Mapped[int] = mapped_column(Integer, default=0)
    venue_id: Mapped[Optional[int]] = mapped_column(ForeignKey("venues.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    edition = relationship("Edition", back_populates="matches")
    venue = relationship("Venue")
    events = relationship(
        "MatchEvent", back_populates="match", cascade="all, delete-orphan"
    )


class MatchEvent(Base):
    """Goal, assist or card tied to a squad member."""

    __tablename__ = "match_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False, index=True)
    squad_member_id: Mapped[int] = mapped_column(ForeignKey("squad_members.id"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(16), nullable=False)
    minute: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    match = relationship("Match", back_populates="events")
