"""Tests for the scoreboard builder against in-memory query fakes."""
from datetime import datetime

import pytest

from kickoff.problems import ProblemError
from kickoff.services.scoreboard import (
    EditionRow,
    EntryRow,
    build_matches,
    build_public_scoreboard,
    build_top_scorers,
    clamp_rotation_seconds,
)
from kickoff.services.slugs import EditionSelector
from kickoff.services.standings import MatchRow, ScorerEventRow

CREATED = datetime(2025, 5, 1, 9, 0)


class FakeQueries:
    def __init__(self, edition=None, entries=(), matches=(), events=(), highlight=None):
        self.edition = edition
        self.entries = list(entries)
        self.matches = list(matches)
        self.events = list(events)
        self.highlight = highlight
        self.selectors = []

    async def find_edition(self, selector):
        self.selectors.append(selector)
        if self.edition is None or selector.edition_slug != self.edition.slug:
            return None
        if selector.competition_slug and selector.competition_slug != self.edition.competition_slug:
            return None
        return self.edition

    async def list_entries(self, edition_id):
        return self.entries

    async def list_matches(self, edition_id):
        return self.matches

    async def list_scorer_events(self, edition_id):
        return self.events

    async def find_active_highlight(self, edition_id, now):
        return self.highlight


def _edition(status="published", **kwargs):
    return EditionRow(
        id=10,
        competition_id=1,
        competition_slug="elite-cup",
        competition_name="Elite Cup",
        label="Elite Cup 2025",
        slug="2025",
        status=status,
        format="round_robin",
        timezone="Europe/Oslo",
        published_at=datetime(2025, 5, 1, 8, 0),
        **kwargs,
    )


def _match(match_id, status, kickoff_at=None, home=1, away=2, home_score=0, away_score=0):
    return MatchRow(
        id=match_id,
        status=status,
        kickoff_at=kickoff_at,
        created_at=CREATED,
        home_entry_id=home,
        away_entry_id=away,
        home_score=home_score,
        away_score=away_score,
    )


def _event(event_type, person_id, entry_id, first="", last=""):
    return ScorerEventRow(
        event_type=event_type, person_id=person_id, entry_id=entry_id, first_name=first, last_name=last
    )


ENTRIES = [EntryRow(1, "Lions"), EntryRow(2, "Tigers")]
NAMES = {1: "Lions", 2: "Tigers"}


@pytest.mark.asyncio
async def test_builds_payload_for_published_edition():
    queries = FakeQueries(
        edition=_edition(),
        entries=ENTRIES,
        matches=[_match(1, "finalized", home_score=2, away_score=1)],
        highlight="Half time",
    )
    payload = await build_public_scoreboard(EditionSelector("elite-cup", "2025"), queries)
    assert payload.edition.id == 10
    assert payload.edition.published_at == "2025-05-01T08:00:00Z"
    assert payload.edition.scoreboard_theme.primary_color == "#0B1F3A"
    assert payload.overlay_message == "Half time"
    assert [s.entry_id for s in payload.standings] == [1, 2]
    assert payload.standings[0].points == 3
    assert payload.rotation == ["live_matches", "upcoming", "standings", "top_scorers"]
    assert [e.name for e in payload.entries] == ["Lions", "Tigers"]


@pytest.mark.asyncio
async def test_composite_string_selector():
    queries = FakeQueries(edition=_edition(), entries=ENTRIES)
    payload = await build_public_scoreboard("elite-cup/2025", queries)
    assert payload.edition.slug == "2025"
    assert queries.selectors == [EditionSelector("elite-cup", "2025")]


@pytest.mark.asyncio
@pytest.mark.parametrize("selector", [EditionSelector("elite-cup", "  "), "elite-cup/", ""])
async def test_blank_edition_slug_is_bad_request(selector):
    queries = FakeQueries(edition=_edition())
    with pytest.raises(ProblemError) as exc:
        await build_public_scoreboard(selector, queries)
    assert exc.value.status == 400
    assert exc.value.type.endswith("/scoreboard/invalid-slug")
    assert queries.selectors == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["draft", "archived"])
async def test_unpublished_edition_is_not_found(status):
    with pytest.raises(ProblemError) as exc:
        await build_public_scoreboard("elite-cup/2025", FakeQueries(edition=_edition(status=status)))
    assert exc.value.status == 404
    assert exc.value.title == "Edition not found"


@pytest.mark.asyncio
async def test_missing_edition_is_not_found():
    with pytest.raises(ProblemError) as exc:
        await build_public_scoreboard("other-cup/2025", FakeQueries(edition=_edition()))
    assert exc.value.status == 404


@pytest.mark.asyncio
async def test_configured_modules_and_rotation():
    edition = _edition(rotation_seconds=1, modules=["top_scorers", "standings", "top_scorers"])
    payload = await build_public_scoreboard("elite-cup/2025", FakeQueries(edition=edition))
    assert payload.rotation == ["top_scorers", "standings"]
    assert payload.edition.scoreboard_rotation_seconds == 2


@pytest.mark.parametrize("value,expected", [(None, 5), ("7", 5), (True, 5), (float("nan"), 5), (float("inf"), 5), (1, 2), (7.8, 7), (30, 30)])
def test_clamp_rotation_seconds(value, expected):
    assert clamp_rotation_seconds(value) == expected


def test_matches_ordered_by_status_then_kickoff():
    rows = [
        _match(1, "finalized", datetime(2025, 6, 1, 10)),
        _match(2, "scheduled", datetime(2025, 6, 2, 10)),
        _match(3, "scheduled", datetime(2025, 6, 1, 12)),
        _match(4, "in_progress", datetime(2025, 6, 1, 14)),
        _match(5, "disputed", None),
    ]
    matches = build_matches(rows, NAMES)
    assert [m.id for m in matches] == [4, 5, 3, 2, 1]
    # Missing kickoff falls back to created_at
    assert matches[1].kickoff_at == "2025-05-01T09:00:00Z"


def test_matches_with_unknown_sides_are_hidden():
    rows = [_match(1, "scheduled", home=1, away=3), _match(2, "scheduled", home=None, away=2)]
    assert build_matches(rows, NAMES) == []


def test_match_scores_clamped():
    (match,) = build_matches([_match(1, "in_progress", home_score=-1, away_score=3)], NAMES)
    assert (match.home.score, match.away.score) == (0, 3)
    assert match.home.name == "Lions"


def test_top_scorers_tally_and_order():
    events = [
        _event("goal", 1, 1, "Ada", "Striker"),
        _event("penalty_goal", 1, 1, "Ada", "Striker"),
        _event("assist", 1, 1, "Ada", "Striker"),
        _event("goal", 2, 2, "Bo", "Winger"),
        _event("yellow_card", 2, 2, "Bo", "Winger"),
        _event("red_card", 3, 2, "Cy", ""),
        _event("own_goal", 4, 1, "Di", "Back"),
    ]
    scorers = build_top_scorers(events, NAMES)
    assert [(s.name, s.goals) for s in scorers] == [("Ada Striker", 2), ("Bo Winger", 1), ("Cy", 0)]
    assert scorers[0].assists == 1
    assert scorers[1].yellow_cards == 1
    assert scorers[2].red_cards == 1


def test_top_scorer_name_fallback():
    scorers = build_top_scorers([_event("goal", 1, 1), _event("goal", 2, 9)], NAMES)
    assert sorted(s.name for s in scorers) == ["Lions", "Unknown"]


def test_top_scorers_capped():
    events = [_event("goal", person_id, 1, f"P{person_id:02d}") for person_id in range(1, 31)]
    assert len(build_top_scorers(events, NAMES)) == 25


def test_write_side_rotation_rejects_what_read_side_clamps():
    from kickoff.services.competitions import normalize_rotation_seconds

    assert clamp_rotation_seconds(1) == 2
    with pytest.raises(ProblemError) as exc:
        normalize_rotation_seconds(1)
    assert exc.value.status == 400
