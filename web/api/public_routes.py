"""Public read API: scoreboard and event feed (no auth, cacheable, rate limited)."""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

import config
from kickoff.models.base import async_session_factory
from kickoff.problems import ProblemError, problem_type
from kickoff.services.etag import etag_matches, format_etag, hash_payload
from kickoff.services.event_feed import EventFeedQueries, get_event_feed
from kickoff.services.scoreboard import ScoreboardQueries, build_public_scoreboard
from kickoff.services.slugs import EditionSelector, parse_composite_edition_slug
from web.api.rate_limit import PUBLIC_LIMIT, limiter

logger = logging.getLogger("kickoff.http")

router = APIRouter(prefix="/api/public", tags=["public"])

SCOREBOARD_SUFFIX = "/scoreboard"


def _cached_json(request: Request, payload, max_age: int) -> Response:
    """200 with ETag and Cache-Control, or 304 when If-None-Match already has this ETag."""
    digest = hash_payload(payload)
    headers = {
        "ETag": format_etag(digest),
        "Cache-Control": f"public, max-age={max_age}",
    }
    if etag_matches(request.headers.get("if-none-match"), digest):
        return Response(status_code=304, headers=headers)
    return JSONResponse(payload.model_dump(mode="json"), headers=headers)


def canonical_scoreboard_path(competition_slug: str, edition_slug: str) -> str:
    return (
        f"/api/public/competitions/{quote(competition_slug, safe='')}"
        f"/editions/{quote(edition_slug, safe='')}/scoreboard"
    )


def _edition_not_found() -> ProblemError:
    return ProblemError(
        404,
        "Edition not found",
        "Check the scoreboard URL and try again.",
        type=problem_type("scoreboard/edition-not-found"),
    )


@router.get("/competitions/{competition_slug}/editions/{edition_slug}/scoreboard")
@limiter.limit(PUBLIC_LIMIT)
async def get_scoreboard(request: Request, competition_slug: str, edition_slug: str):
    """Scoreboard payload for a published edition."""
    async with async_session_factory() as session:
        payload = await build_public_scoreboard(
            EditionSelector(competition_slug, edition_slug),
            ScoreboardQueries(session),
        )
    return _cached_json(request, payload, config.SCOREBOARD_CACHE_SECONDS)


async def _find_published(queries: ScoreboardQueries, selector: EditionSelector):
    if not selector.edition_slug:
        return None
    edition = await queries.find_edition(selector)
    if edition is None or edition.status != "published":
        return None
    return edition


@router.get("/editions/{composite_slug:path}")
@limiter.limit(PUBLIC_LIMIT)
async def redirect_composite_scoreboard(request: Request, composite_slug: str):
    """Resolve "competition/edition" (optionally ending in /scoreboard) and redirect to the canonical route."""
    value = composite_slug.strip("/")
    stripped: Optional[str] = None
    if value.endswith(SCOREBOARD_SUFFIX):
        stripped = value[: -len(SCOREBOARD_SUFFIX)]

    candidates = [value, stripped]
    # "comp/edition/scoreboard" can only mean the stripped form
    if stripped is not None and stripped.count("/") == 1:
        candidates = [stripped]

    async with async_session_factory() as session:
        queries = ScoreboardQueries(session)
        edition = None
        for candidate in candidates:
            if not candidate:
                continue
            edition = await _find_published(queries, parse_composite_edition_slug(candidate))
            if edition is not None:
                break

    if edition is None:
        raise _edition_not_found()
    return RedirectResponse(
        canonical_scoreboard_path(edition.competition_slug, edition.slug),
        status_code=308,
    )


@router.get("/events")
@limiter.limit(PUBLIC_LIMIT)
async def get_events(request: Request, cursor: Optional[str] = None):
    """Public event feed, oldest first, paged with an opaque cursor."""
    async with async_session_factory() as session:
        feed = await get_event_feed(EventFeedQueries(session), cursor=cursor)
    return _cached_json(request, feed, config.EVENT_FEED_CACHE_SECONDS)
