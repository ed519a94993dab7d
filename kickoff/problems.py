"""RFC 9457 problem details raised by services and rendered by the web layer."""
from __future__ import annotations

from typing import Any, Optional

PROBLEM_BASE = "https://kickoff.app/problems"


class ProblemError(Exception):
    """Error carrying a problem-details body and HTTP status."""

    def __init__(
        self,
        status: int,
        title: str,
        detail: Optional[str] = None,
        type: Optional[str] = None,
        errors: Optional[dict[str, list[str]]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(detail or title)
        self.status = status
        self.title = title
        self.detail = detail
        self.type = type or f"https://httpstatuses.com/{status}"
        self.errors = errors
        self.headers = headers or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status,
        }
        if self.detail is not None:
            body["detail"] = self.detail
        if self.errors:
            body["errors"] = self.errors
        return body


def problem_type(slug: str) -> str:
    return f"{PROBLEM_BASE}/{slug}"


def bad_request(detail: str, slug: Optional[str] = None, title: str = "Bad request") -> ProblemError:
    return ProblemError(400, title, detail, type=problem_type(slug) if slug else None)


def unauthorized(detail: str = "You must sign in to access this resource.") -> ProblemError:
    return ProblemError(
        401,
        "Authentication required",
        detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(detail: str = "You do not have permission to perform this action.") -> ProblemError:
    return ProblemError(403, "Access denied", detail)


def not_found(resource: str, detail: Optional[str] = None, slug: Optional[str] = None) -> ProblemError:
    return ProblemError(
        404,
        f"{resource} not found",
        detail or f"The requested {resource.lower()} does not exist.",
        type=problem_type(slug) if slug else None,
    )


def conflict(detail: str, slug: Optional[str] = None) -> ProblemError:
    return ProblemError(409, "Conflict", detail, type=problem_type(slug) if slug else None)


def too_many_requests(retry_after_seconds: int) -> ProblemError:
    return ProblemError(
        429,
        "Too many requests",
        "Rate limit exceeded. Please try again later.",
        headers={"Retry-After": str(retry_after_seconds)},
    )
