"""Payload hashing for ETag-based conditional requests."""
from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Optional

from pydantic import BaseModel


def canonical_json(payload: Any) -> bytes:
    """Serialize with sorted keys and compact separators. Unserializable values raise TypeError."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def hash_payload(payload: Any) -> str:
    """SHA-1 of the canonical JSON, base64url without padding."""
    digest = hashlib.sha1(canonical_json(payload)).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def format_etag(digest: str) -> str:
    return f'"{digest}"'


def etag_matches(if_none_match: Optional[str], digest: str) -> bool:
    """True if any validator in an If-None-Match header equals digest (weak prefix ignored)."""
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate.strip('"') == digest:
            return True
    return False
