"""League table computation with head-to-head and fair-play tie-breakers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

STANDING_STATUSES = {"finalized", "disputed"}

# Fair-play penalty points per card
FAIR_PLAY_WEIGHTS = {"yellow_card": 1, "red_card": 3}


@dataclass
class MatchRow:
    id: int
    status: str
    kickoff_at: Optional[datetime]
    created_at: datetime
    home_entry_id: Optional[int]
    away_entry_id: Optional[int]
    home_score: int
    away_score: int
    venue_name: Optional[str] = None
    code: Optional[str] = None


@dataclass
class ScorerEventRow:
    event_type: str
    person_id: Optional[int]
    entry_id: Optional[int]
    first_name: Optional[str]
    last_name: Optional[str]


@dataclass
class StandingRow:
    entry_id: int
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0
    fair_play_score: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


def _counts(match: MatchRow) -> bool:
    return bool(match.home_entry_id and match.away_entry_id and match.status in STANDING_STATUSES)


def _apply_result(home: StandingRow, away: StandingRow, home_score: int, away_score: int) -> None:
    home.played += 1
    away.played += 1
    home.goals_for += home_score
    home.goals_against += away_score
    away.goals_for += away_score
    away.goals_against += home_score
    if home_score > away_score:
        home.won += 1
        home.points += 3
        away.lost += 1
    elif home_score < away_score:
        away.won += 1
        away.points += 3
        home.lost += 1
    else:
        home.drawn += 1
        away.drawn += 1
        home.points += 1
        away.points += 1


def fair_play_scores(events: Iterable[ScorerEventRow]) -> dict[int, int]:
    scores: dict[int, int] = {}
    for event in events:
        weight = FAIR_PLAY_WEIGHTS.get(event.event_type)
        if not event.entry_id or not weight:
            continue
        scores[event.entry_id] = scores.get(event.entry_id, 0) + weight
    return scores


def _head_to_head(group: list[StandingRow], matches: list[MatchRow]) -> dict[int, StandingRow]:
    ids = {row.entry_id for row in group}
    stats = {row.entry_id: StandingRow(entry_id=row.entry_id) for row in group}
    for match in matches:
        if not _counts(match):
            continue
        if match.home_entry_id not in ids or match.away_entry_id not in ids:
            continue
        _apply_result(
            stats[match.home_entry_id],
            stats[match.away_entry_id],
            max(match.home_score, 0),
            max(match.away_score, 0),
        )
    return stats


def _table_key(row: StandingRow) -> tuple[int, int, int]:
    return (-row.points, -row.goal_difference, -row.goals_for)


def build_standings(
    matches: list[MatchRow],
    events: list[ScorerEventRow],
    entry_names: dict[int, str],
) -> list[tuple[int, StandingRow]]:
    """Return (position, row) pairs for every entry, position ascending."""
    fair_play = fair_play_scores(events)
    stats = {
        entry_id: StandingRow(entry_id=entry_id, fair_play_score=fair_play.get(entry_id, 0))
        for entry_id in entry_names
    }

    for match in matches:
        if not _counts(match):
            continue
        home = stats.get(match.home_entry_id)
        away = stats.get(match.away_entry_id)
        if not home or not away:
            continue
        _apply_result(home, away, max(match.home_score, 0), max(match.away_score, 0))

    # Group rows tied on points, goal difference and goals for
    groups: dict[tuple[int, int, int], list[StandingRow]] = {}
    for row in stats.values():
        groups.setdefault(_table_key(row), []).append(row)

    ordered: list[StandingRow] = []
    for key in sorted(groups):
        group = groups[key]
        if len(group) == 1:
            ordered.extend(group)
            continue
        h2h = _head_to_head(group, matches)
        ordered.extend(
            sorted(
                group,
                key=lambda row: (
                    _table_key(h2h[row.entry_id]),
                    row.fair_play_score,
                    entry_names.get(row.entry_id, str(row.entry_id)).casefold(),
                    row.entry_id,
                ),
            )
        )

    return [(index + 1, row) for index, row in enumerate(ordered)]
