"""Render every API error as application/problem+json."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from kickoff.problems import ProblemError
from web.api.rate_limit import rate_limit_exceeded_handler

logger = logging.getLogger("kickoff.http")

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_response(problem: ProblemError) -> JSONResponse:
    return JSONResponse(
        problem.to_dict(),
        status_code=problem.status,
        headers=problem.headers or None,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def handle_problem(request: Request, exc: ProblemError) -> JSONResponse:
    if exc.status >= 500:
        logger.error("Problem %s on %s: %s", exc.status, request.url.path, exc.detail)
    return problem_response(exc)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else None
    titles = {
        400: "Bad request",
        401: "Authentication required",
        403: "Access denied",
        404: "Not found",
        405: "Method not allowed",
        409: "Conflict",
    }
    problem = ProblemError(
        exc.status_code,
        titles.get(exc.status_code, detail or "Error"),
        detail,
        headers=dict(exc.headers or {}),
    )
    return problem_response(problem)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
        errors.setdefault(location, []).append(error.get("msg", "Invalid value"))
    return problem_response(
        ProblemError(400, "Invalid request", "One or more fields are invalid.", errors=errors)
    )


def register_problem_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProblemError, handle_problem)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
