"""Tests for the scoreboard poller."""
import asyncio

import httpx
import pytest

from kickoff.client.poller import PollState, ScoreboardPoller, poll_interval_ms
from kickoff.services.scoreboard_types import (
    ScoreboardEdition,
    ScoreboardEntry,
    ScoreboardPayload,
)

URL = "http://test/api/public/competitions/elite-cup/editions/2025/scoreboard"


def _payload(rotation=5, entries=()):
    return ScoreboardPayload(
        edition=ScoreboardEdition(
            id=1,
            competition_id=1,
            competition_slug="elite-cup",
            competition_name="Elite Cup",
            label="Elite Cup 2025",
            slug="2025",
            status="published",
            format="round_robin",
            timezone="Europe/Oslo",
            scoreboard_rotation_seconds=rotation,
        ),
        entries=[ScoreboardEntry(id=i, name=n) for i, n in entries],
    )


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "value,expected",
    [
        (5, 5000),
        (2.5, 2500),
        (1, 2000),
        (0, 2000),
        (-3, 2000),
        (None, 2000),
        ("5", 2000),
        (True, 2000),
        (float("nan"), 2000),
    ],
)
def test_poll_interval_ms(value, expected):
    assert poll_interval_ms(value) == expected


@pytest.mark.asyncio
async def test_not_modified_keeps_data():
    seen = []

    def handler(request):
        seen.append(request.headers.get("if-none-match"))
        return httpx.Response(304)

    initial = _payload(entries=[(1, "Lions")])
    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL, initial=initial, etag='"v1"')
        assert await poller.refresh() == PollState.UNCHANGED
    assert seen == ['"v1"']
    assert poller.data is initial
    assert poller.etag == '"v1"'
    assert poller.state == PollState.IDLE
    assert poller.last_outcome == PollState.UNCHANGED


@pytest.mark.asyncio
async def test_update_replaces_data_and_merges_names():
    """A 200 swaps data and etag, keeps earlier names and rescales the interval."""
    fresh = _payload(rotation=8, entries=[(2, "Tigers")])
    updates = []

    def handler(request):
        assert "if-none-match" not in request.headers
        return httpx.Response(200, json=fresh.model_dump(mode="json"), headers={"ETag": '"v2"'})

    async def on_update(data):
        updates.append(data)

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL, initial=_payload(entries=[(1, "Lions")]), on_update=on_update)
        poller.directory.merge(poller.initial)
        assert await poller.refresh() == PollState.UPDATED

    assert poller.data == fresh
    assert poller.etag == '"v2"'
    assert poller.interval_ms == 8000
    assert poller.directory.name_for(1) == "Lions"
    assert poller.directory.name_for(2) == "Tigers"
    assert updates == [fresh]


@pytest.mark.asyncio
async def test_sync_callback_is_supported():
    updates = []

    def handler(request):
        return httpx.Response(200, json=_payload().model_dump(mode="json"))

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL, on_update=updates.append)
        await poller.refresh()
    assert len(updates) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(404, json={"title": "Edition not found"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"edition": {"id": "x"}}),
    ],
)
async def test_failures_keep_previous_data(response):
    initial = _payload()
    async with _client(lambda request: response) as client:
        poller = ScoreboardPoller(client, URL, initial=initial, etag='"v1"')
        assert await poller.refresh() == PollState.FAILED
    assert poller.data is initial
    assert poller.etag == '"v1"'


@pytest.mark.asyncio
async def test_transport_error_is_swallowed():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL)
        assert await poller.refresh() == PollState.FAILED
    assert poller.data is None


@pytest.mark.asyncio
async def test_overlapping_refresh_is_dropped():
    release = asyncio.Event()
    calls = 0

    async def handler(request):
        nonlocal calls
        calls += 1
        await release.wait()
        return httpx.Response(304)

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL)
        first = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0.01)
        assert poller.fetching
        assert poller.state == PollState.FETCHING
        assert await poller.refresh() is None
        release.set()
        assert await first == PollState.UNCHANGED
    assert calls == 1


@pytest.mark.asyncio
async def test_timer_polls_until_stopped():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        return httpx.Response(304)

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL)
        poller.interval_ms = 10
        async with poller:
            assert poller.running
            await asyncio.sleep(0.1)
        assert not poller.running
        polled = calls
        await asyncio.sleep(0.05)
    assert polled >= 2
    assert calls == polled


@pytest.mark.asyncio
async def test_stop_cancels_inflight_fetch():
    started = asyncio.Event()

    async def handler(request):
        started.set()
        await asyncio.Event().wait()

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL)
        poller.interval_ms = 1
        poller.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        assert poller.fetching
        await poller.stop()
        assert not poller.fetching
        assert not poller.running
        assert poller.state == PollState.IDLE


@pytest.mark.asyncio
async def test_start_seeds_directory_from_initial():
    async with _client(lambda request: httpx.Response(304)) as client:
        poller = ScoreboardPoller(client, URL, initial=_payload(rotation=3, entries=[(1, "Lions")]))
        assert poller.interval_ms == 3000
        poller.start()
        assert poller.directory.name_for(1) == "Lions"
        await poller.stop()


@pytest.mark.asyncio
async def test_polling_stops_after_max_age():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        return httpx.Response(304)

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL, max_polling_age_ms=0)
        poller.interval_ms = 5
        poller.start()
        await asyncio.sleep(0.05)
        assert not poller.running
        await poller.stop()
    assert calls == 0


@pytest.mark.asyncio
async def test_failing_callback_keeps_timer_running():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        return httpx.Response(200, json=_payload().model_dump(mode="json"))

    def on_update(data):
        raise RuntimeError("view failed to render")

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL, on_update=on_update)
        assert await poller.refresh() == PollState.UPDATED
        assert poller.data is not None

        poller.start()
        poller.interval_ms = 10
        await asyncio.sleep(0.1)
        assert poller.running
        await poller.stop()
    # one direct refresh, then one tick before the interval goes back to 5 s
    assert calls == 2


@pytest.mark.asyncio
async def test_stop_from_callback():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        return httpx.Response(200, json=_payload().model_dump(mode="json"))

    async with _client(handler) as client:
        poller = ScoreboardPoller(client, URL)

        async def on_update(data):
            await poller.stop()

        poller.on_update = on_update
        poller.start()
        poller.interval_ms = 10
        await asyncio.sleep(0.1)
        assert not poller.running
        assert not poller.fetching
        assert poller.last_outcome == PollState.UPDATED
    assert calls == 1
