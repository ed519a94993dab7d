"""FastAPI tournament admin API with public scoreboard."""
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

import config
from kickoff.models.base import init_db
from web.api.auth_routes import router as auth_router
from web.api.competition_routes import router as competition_router
from web.api.edition_routes import router as edition_router
from web.api.match_routes import router as match_router
from web.api.problems import register_problem_handlers
from web.api.public_routes import router as public_router
from web.api.rate_limit import limiter
from web.api.team_routes import router as team_router

logger = logging.getLogger("kickoff.http")

CORRELATION_HEADER = "X-Correlation-Id"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    await init_db()
    yield


app = FastAPI(title="Kickoff Tournament API", lifespan=lifespan)
app.state.limiter = limiter


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log start, completion and failure."""

    async def dispatch(self, request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        started = time.perf_counter()
        logger.debug("request_started %s %s correlation_id=%s", request.method, request.url.path, correlation_id)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed %s %s correlation_id=%s", request.method, request.url.path, correlation_id
            )
            raise
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "request_completed %s %s status=%s duration_ms=%.1f correlation_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            correlation_id,
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", CORRELATION_HEADER],
)
register_problem_handlers(app)

app.include_router(auth_router)
app.include_router(public_router)
app.include_router(competition_router)
app.include_router(edition_router)
app.include_router(team_router)
app.include_router(match_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
