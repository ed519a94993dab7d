"""Append-only change feed with keyset pagination."""
from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from kickoff.models import EventFeedItem
from kickoff.problems import bad_request
from kickoff.services.timeutil import isoformat_utc, to_naive_utc, utcnow

EventFeedType = Literal[
    "match_updated",
    "match_finalized",
    "schedule_changed",
    "entry_status_changed",
    "notification",
]


class EventEnvelope(BaseModel):
    id: int
    type: EventFeedType
    occurred_at: str
    payload: dict[str, Any] = Field(default_factory=dict)


class EventFeed(BaseModel):
    items: list[EventEnvelope] = Field(default_factory=list)
    next_cursor: Optional[str] = None


def record_event(
    session: AsyncSession,
    edition_id: Optional[int],
    entity_type: str,
    action: str,
    snapshot: Optional[dict] = None,
) -> EventFeedItem:
    """Stage a feed row on the session. The caller commits."""
    item = EventFeedItem(
        edition_id=edition_id,
        entity_type=entity_type,
        action=action,
        snapshot=dict(snapshot or {}),
        created_at=utcnow(),
    )
    session.add(item)
    return item


class EventFeedQueries:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_events(
        self, cursor: Optional[tuple[datetime, int]], limit: int
    ) -> list[EventFeedItem]:
        stmt = select(EventFeedItem).order_by(EventFeedItem.created_at, EventFeedItem.id).limit(limit)
        if cursor:
            created_at, item_id = cursor
            stmt = stmt.where(
                or_(
                    EventFeedItem.created_at > created_at,
                    and_(EventFeedItem.created_at == created_at, EventFeedItem.id > item_id),
                )
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


def map_event_type(entity_type: str, snapshot: Optional[dict]) -> str:
    if entity_type == "entry":
        return "entry_status_changed"
    if entity_type == "notification":
        return "notification"
    if entity_type == "match":
        snapshot = snapshot if isinstance(snapshot, dict) else {}
        if snapshot.get("status") in ("finalized", "disputed"):
            return "match_finalized"
        if snapshot.get("schedule_change") is True:
            return "schedule_changed"
        return "match_updated"
    return "schedule_changed"


def encode_cursor(created_at: datetime, item_id: int) -> str:
    raw = json.dumps({"id": item_id, "created_at": isoformat_utc(created_at)}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).rstrip(b"=").decode("ascii")


def decode_cursor(token: str) -> tuple[datetime, int]:
    """Raise a 400 problem for anything that is not a cursor we issued."""
    try:
        padded = token + "=" * (-len(token) % 4)
        parsed = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
        item_id = parsed["id"]
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValueError("invalid id")
        created_at = datetime.fromisoformat(parsed["created_at"].replace("Z", "+00:00"))
    except (ValueError, KeyError, TypeError, AttributeError, UnicodeError, binascii.Error):
        raise bad_request(
            "Remove the cursor parameter and try again.",
            slug="event-feed/invalid-cursor",
            title="Invalid event cursor",
        ) from None
    return to_naive_utc(created_at), item_id


def _to_envelope(item: EventFeedItem) -> EventEnvelope:
    snapshot = item.snapshot if isinstance(item.snapshot, dict) else {}
    payload = {
        "edition_id": item.edition_id,
        "entity_type": item.entity_type,
        "action": item.action,
        **snapshot,
    }
    return EventEnvelope(
        id=item.id,
        type=map_event_type(item.entity_type, snapshot),
        occurred_at=isoformat_utc(item.created_at),
        payload=payload,
    )


async def get_event_feed(
    queries: EventFeedQueries,
    cursor: Optional[str] = None,
    page_size: int = config.EVENT_FEED_PAGE_SIZE,
) -> EventFeed:
    """One page of feed items oldest first; next_cursor is set only when more rows exist."""
    position = decode_cursor(cursor) if cursor else None
    rows = await queries.list_events(position, page_size + 1)
    has_more = len(rows) > page_size
    page = rows[:page_size]
    next_cursor = None
    if has_more and page:
        next_cursor = encode_cursor(page[-1].created_at, page[-1].id)
    return EventFeed(items=[_to_envelope(row) for row in page], next_cursor=next_cursor)
