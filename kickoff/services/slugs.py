"""Slug helpers and the competition/edition composite-key codec."""
from __future__ import annotations

import re
from typing import NamedTuple, Optional
from urllib.parse import quote, unquote

from kickoff.problems import bad_request

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


class EditionSelector(NamedTuple):
    competition_slug: Optional[str]
    edition_slug: str


def build_edition_slug(competition_slug: Optional[str], edition_slug: str) -> str:
    """Join competition and edition slug with '/', or return the edition slug alone."""
    if competition_slug and competition_slug.strip():
        return f"{competition_slug}/{edition_slug}"
    return edition_slug


def encode_edition_slug_param(competition_slug: Optional[str], edition_slug: str) -> str:
    """Percent-encode the joined slug as a single path segment ('/' becomes %2F)."""
    return quote(build_edition_slug(competition_slug, edition_slug), safe=_URI_COMPONENT_SAFE)


def parse_composite_edition_slug(value: str) -> EditionSelector:
    """Split a composite slug on its first '/'. Inverse of build_edition_slug."""
    decoded = _safe_unquote(value)
    first, sep, rest = decoded.partition("/")
    if not sep:
        return EditionSelector(None, first)
    return EditionSelector(first or None, rest)


def normalize_slug(value: Optional[str]) -> str:
    slug = _NON_ALNUM.sub("-", (value or "").strip().lower()).strip("-")
    if not slug:
        raise bad_request(
            "Slug must contain at least one alphanumeric character.",
            slug="invalid-slug",
            title="Slug is required",
        )
    return slug


def _safe_unquote(value: str) -> str:
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value
