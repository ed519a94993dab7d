"""Scoreboard overlay highlights and the public event feed."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from kickoff.models.base import Base
from kickoff.services.timeutil import utcnow


class ScoreboardHighlight(Base):
    """Overlay message shown on the public scoreboard until it expires."""

    __tablename__ = "scoreboard_highlights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    edition_id: Mapped[int] = mapped_column(ForeignKey("editions.id"), nullable=False, index=True)
    message: Mapped[str] = mapped_column(String(160), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("web_users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class EventFeedItem(Base):
    """Append-only change record exposed through the public event feed."""

    __tablename__ = "event_feed"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    edition_id: Mapped[Optional[int]] = mapped_column(ForeignKey("editions.id"), nullable=True, index=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)  # match, entry, notification
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    snapshot: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
