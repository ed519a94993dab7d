"""Client-side entry id -> display name directory.

Names only ever get added or overwritten, so views rendered from an older
poll can still resolve entries that a newer payload no longer mentions.
"""
from __future__ import annotations

from typing import Mapping, Optional

from kickoff.services.scoreboard_types import ScoreboardEntry, ScoreboardPayload


def merge_entry_directory(
    directory: Mapping[int, str], data: ScoreboardPayload
) -> dict[int, str]:
    """Return a new directory with names from data upserted into directory."""
    merged = dict(directory)
    for entry in data.entries:
        merged[entry.id] = entry.name
    for match in data.matches:
        for side in (match.home, match.away):
            if side.entry_id is None:
                continue
            merged[side.entry_id] = side.name
    return merged


class EntryDirectory:
    """Directory owned by a single scoreboard view."""

    def __init__(self, seed: Optional[Mapping[int, str]] = None):
        self._names: dict[int, str] = dict(seed or {})

    def reset(self, seed: Optional[Mapping[int, str]] = None) -> None:
        self._names = dict(seed or {})

    def merge(self, data: ScoreboardPayload) -> dict[int, str]:
        self._names = merge_entry_directory(self._names, data)
        return dict(self._names)

    def name_for(self, entry_id: Optional[int], default: Optional[str] = None) -> Optional[str]:
        if entry_id is None:
            return default
        return self._names.get(entry_id, default)

    def as_entries(self) -> list[ScoreboardEntry]:
        return [ScoreboardEntry(id=entry_id, name=name) for entry_id, name in sorted(self._names.items())]

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._names
