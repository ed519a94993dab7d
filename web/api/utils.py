"""Shared API utilities."""
from datetime import datetime
from typing import Annotated, Optional

from pydantic import PlainSerializer

from kickoff.services.timeutil import isoformat_utc

# Naive UTC datetimes rendered as ISO-8601 with a Z suffix
UtcDatetime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=Optional[str])]
