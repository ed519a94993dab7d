"""Periodic conditional refetch of a public scoreboard."""
from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from kickoff.client.directory import EntryDirectory
from kickoff.services.scoreboard_types import ScoreboardPayload

logger = logging.getLogger("kickoff.poller")

MIN_POLL_INTERVAL_MS = 2000

UpdateCallback = Callable[[ScoreboardPayload], Union[None, Awaitable[None]]]


class PollState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


def poll_interval_ms(rotation_seconds: Any) -> int:
    """Refetch interval in ms: rotation seconds scaled, never below 2000."""
    if isinstance(rotation_seconds, bool) or not isinstance(rotation_seconds, (int, float)):
        return MIN_POLL_INTERVAL_MS
    if rotation_seconds != rotation_seconds:  # NaN
        return MIN_POLL_INTERVAL_MS
    return int(max(rotation_seconds * 1000, MIN_POLL_INTERVAL_MS))


class ScoreboardPoller:
    """Keeps one scoreboard view fresh.

    Each tick sends a conditional GET with the last ETag. A 200 replaces the
    data and merges names into the entry directory, a 304 keeps what is shown,
    and any failure is logged and left for the next tick. Ticks that land
    while a fetch is in flight are dropped.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        initial: Optional[ScoreboardPayload] = None,
        etag: Optional[str] = None,
        max_polling_age_ms: Optional[int] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        self.client = client
        self.url = url
        self.initial = initial
        self.data: Optional[ScoreboardPayload] = initial
        self.etag = etag
        self.max_polling_age_ms = max_polling_age_ms
        self.on_update = on_update
        self.directory = EntryDirectory()
        self.state = PollState.IDLE
        self.last_outcome: Optional[PollState] = None
        self.interval_ms = poll_interval_ms(
            initial.edition.scoreboard_rotation_seconds if initial else None
        )
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> None:
        """Reset the directory from the initial data and arm the timer."""
        if self.running:
            return
        self.directory.reset()
        if self.data is not None:
            self.directory.merge(self.data)
        self._started_at = asyncio.get_running_loop().time()
        self._timer = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the timer and any fetch in flight.

        Safe to call from the update callback: the fetch running the callback
        is left to finish.
        """
        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._timer, self._inflight)
            if task is not None and task is not current and not task.done()
        ]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer = None
        self._inflight = None
        self.state = PollState.IDLE

    async def __aenter__(self) -> "ScoreboardPoller":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _expired(self) -> bool:
        if self.max_polling_age_ms is None or self._started_at is None:
            return False
        elapsed_ms = (asyncio.get_running_loop().time() - self._started_at) * 1000
        return elapsed_ms >= self.max_polling_age_ms

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            if self._expired():
                logger.info("Polling stopped for %s: max age %s ms reached", self.url, self.max_polling_age_ms)
                return
            await self.refresh()

    async def refresh(self) -> Optional[PollState]:
        """Fetch once. Returns None if a fetch was already in flight."""
        if self.fetching:
            logger.debug("Skipping tick for %s: fetch in flight", self.url)
            return None
        self._inflight = asyncio.create_task(self._fetch())
        # cancelling the caller must not cancel the fetch; stop() does that
        return await asyncio.shield(self._inflight)

    async def _fetch(self) -> PollState:
        self.state = PollState.FETCHING
        outcome = PollState.FAILED
        try:
            outcome = await self._request()
        finally:
            self.last_outcome = outcome
            self.state = PollState.IDLE
        return outcome

    async def _request(self) -> PollState:
        headers = {"If-None-Match": self.etag} if self.etag else {}
        try:
            response = await self.client.get(self.url, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Scoreboard fetch failed for %s: %s", self.url, exc)
            return PollState.FAILED

        if response.status_code == 304:
            return PollState.UNCHANGED
        if response.status_code != 200:
            logger.warning("Scoreboard fetch for %s returned %s", self.url, response.status_code)
            return PollState.FAILED

        try:
            data = ScoreboardPayload.model_validate(response.json())
        except ValueError as exc:
            logger.warning("Scoreboard payload from %s is invalid: %s", self.url, exc)
            return PollState.FAILED

        self.data = data
        self.etag = response.headers.get("etag") or self.etag
        self.directory.merge(data)
        self.interval_ms = poll_interval_ms(data.edition.scoreboard_rotation_seconds)
        if self.on_update is not None:
            try:
                result = self.on_update(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Update callback failed for %s", self.url)
        return PollState.UPDATED
