"""Competition, edition and per-edition scoreboard settings."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kickoff.models.base import Base
from kickoff.services.timeutil import utcnow

# Edition status values: draft, published, archived
EDITION_STATUSES = ("draft", "published", "archived")
EDITION_FORMATS = ("round_robin", "knockout", "hybrid")


class Competition(Base):
    """Recurring competition owning one or more editions."""

    __tablename__ = "competitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    default_timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    primary_color: Mapped[str] = mapped_column(String(7), nullable=False)
    secondary_color: Mapped[str] = mapped_column(String(7), nullable=False)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    editions = relationship(
        "Edition", back_populates="competition", cascade="all, delete-orphan"
    )
    venues = relationship(
        "Venue", back_populates="competition", cascade="all, delete-orphan"
    )


class Edition(Base):
    """One dated run of a competition."""

    __tablename__ = "editions"
    __table_args__ = (UniqueConstraint("competition_id", "slug", name="uq_editions_competition_slug"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id"), nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), default="draft")  # draft, published, archived
    format: Mapped[str] = mapped_column(String(16), nullable=False)  # round_robin, knockout, hybrid
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    registration_opens_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    registration_closes_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    competition: Mapped["Competition"] = relationship("Competition", back_populates="editions")
    settings: Mapped["EditionSettings"] = relationship(
        "EditionSettings", back_populates="edition", uselist=False, cascade="all, delete-orphan"
    )
    entries = relationship(
        "Entry", back_populates="edition", cascade="all, delete-orphan"
    )
    matches = relationship(
        "Match", back_populates="edition", cascade="all, delete-orphan"
    )


class EditionSettings(Base):
    """Scoreboard rotation, modules and theme for an edition."""

    __tablename__ = "edition_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    edition_id: Mapped[int] = mapped_column(ForeignKey("editions.id"), unique=True, nullable=False)
    scoreboard_rotation_seconds: Mapped[int] = mapped_column(Integer, default=5)
    scoreboard_modules: Mapped[list] = mapped_column(JSON, default=list)
    primary_color: Mapped[str] = mapped_column(String(7), default="#0B1F3A")
    secondary_color: Mapped[str] = mapped_column(String(7), default="#FFFFFF")
    background_image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    entries_locked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    edition: Mapped["Edition"] = relationship("Edition", back_populates="settings")
