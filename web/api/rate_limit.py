"""Per-client rate limits for public and login endpoints."""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

import config
from kickoff.problems import too_many_requests

logger = logging.getLogger("kickoff.http")

PUBLIC_LIMIT = f"{config.RATE_LIMIT_PUBLIC_PER_MINUTE}/minute"
AUTH_LIMIT = f"{config.RATE_LIMIT_AUTH_PER_MINUTE}/minute"


def client_key(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return get_remote_address(request) or "unknown"


limiter = Limiter(key_func=client_key)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = 60
    limit = getattr(exc, "limit", None)
    if limit is not None and getattr(limit, "limit", None) is not None:
        retry_after = int(limit.limit.get_expiry())
    logger.warning("Rate limit exceeded for %s on %s", client_key(request), request.url.path)
    problem = too_many_requests(retry_after)
    return JSONResponse(
        problem.to_dict(),
        status_code=problem.status,
        headers=problem.headers,
        media_type="application/problem+json",
    )
