"""People and the squads they are listed in."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kickoff.models.base import Base


class Person(Base):
    """A player or official."""

    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")


class Squad(Base):
    """Match squad for an entry (one per entry)."""

    __tablename__ = "squads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(ForeignKey("entries.id"), unique=True, nullable=False)

    entry: Mapped["Entry"] = relationship("Entry", back_populates="squad")
    members = relationship(
        "SquadMember", back_populates="squad", cascade="all, delete-orphan"
    )


class SquadMember(Base):
    """Person listed in a squad."""

    __tablename__ = "squad_members"
    __table_args__ = (UniqueConstraint("squad_id", "person_id", name="uq_squad_members_person"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    squad_id: Mapped[int] = mapped_column(ForeignKey("squads.id"), nullable=False, index=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    jersey_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    squad: Mapped["Squad"] = relationship("Squad", back_populates="members")
    person: Mapped["Person"] = relationship("Person")
