"""Teams and their entries into editions."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kickoff.models.base import Base
from kickoff.services.timeutil import utcnow

# Entry status values: pending, approved, rejected, withdrawn
ENTRY_STATUSES = ("pending", "approved", "rejected", "withdrawn")


class Team(Base):
    """Club or side that can enter editions."""

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    entries = relationship(
        "Entry", back_populates="team", cascade="all, delete-orphan"
    )


class Entry(Base):
    """A team's registered participation in one edition."""

    __tablename__ = "entries"
    __table_args__ = (UniqueConstraint("edition_id", "team_id", name="uq_entries_edition_team"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    edition_id: Mapped[int] = mapped_column(ForeignKey("editions.id"), nullable=False, index=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    decision_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    edition: Mapped["Edition"] = relationship("Edition", back_populates="entries")
    team: Mapped["Team"] = relationship("Team", back_populates="entries")
    squad: Mapped[Optional["Squad"]] = relationship(
        "Squad", back_populates="entry", uselist=False, cascade="all, delete-orphan"
    )
