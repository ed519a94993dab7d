"""Tests for the client-side entry directory."""
from kickoff.client.directory import EntryDirectory, merge_entry_directory
from kickoff.services.scoreboard_types import (
    ScoreboardEdition,
    ScoreboardEntry,
    ScoreboardMatch,
    ScoreboardMatchSide,
    ScoreboardPayload,
)

EDITION = ScoreboardEdition(
    id=1,
    competition_id=1,
    competition_slug="elite-cup",
    competition_name="Elite Cup",
    label="Elite Cup 2025",
    slug="2025",
    status="published",
    format="round_robin",
    timezone="Europe/Oslo",
)


def _payload(entries=(), matches=()):
    return ScoreboardPayload(edition=EDITION, entries=list(entries), matches=list(matches))


def _match(home, away):
    return ScoreboardMatch(
        id=1,
        status="scheduled",
        kickoff_at="2025-06-01T18:00:00Z",
        home=ScoreboardMatchSide(entry_id=home[0], name=home[1]),
        away=ScoreboardMatchSide(entry_id=away[0], name=away[1]),
    )


def test_merge_adds_entries_and_match_sides():
    data = _payload(
        entries=[ScoreboardEntry(id=1, name="Lions")],
        matches=[_match((2, "Tigers"), (3, "Bears"))],
    )
    assert merge_entry_directory({}, data) == {1: "Lions", 2: "Tigers", 3: "Bears"}


def test_merge_keeps_names_missing_from_new_payload():
    """Names never disappear once seen."""
    directory = {1: "Lions", 9: "Old Boys"}
    data = _payload(entries=[ScoreboardEntry(id=1, name="Lions FC")])
    merged = merge_entry_directory(directory, data)
    assert merged == {1: "Lions FC", 9: "Old Boys"}
    assert directory == {1: "Lions", 9: "Old Boys"}


def test_merge_skips_sides_without_entry():
    data = _payload(matches=[_match((None, "TBD"), (2, "Tigers"))])
    assert merge_entry_directory({}, data) == {2: "Tigers"}


def test_directory_lookup():
    directory = EntryDirectory({5: "Seed"})
    directory.merge(_payload(entries=[ScoreboardEntry(id=2, name="Lions")]))
    assert len(directory) == 2
    assert 2 in directory
    assert directory.name_for(2) == "Lions"
    assert directory.name_for(7, "Unknown") == "Unknown"
    assert directory.name_for(None, "Unknown") == "Unknown"
    assert [e.id for e in directory.as_entries()] == [2, 5]


def test_directory_reset():
    directory = EntryDirectory({5: "Seed"})
    directory.reset()
    assert len(directory) == 0
    directory.reset({1: "Lions"})
    assert directory.name_for(1) == "Lions"
