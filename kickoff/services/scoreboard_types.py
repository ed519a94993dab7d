"""Wire schema for the public scoreboard payload."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

ScoreboardSection = Literal["live_matches", "upcoming", "standings", "top_scorers"]

DEFAULT_ROTATION: list[str] = ["live_matches", "upcoming", "standings", "top_scorers"]
DEFAULT_ROTATION_SECONDS = 5
DEFAULT_THEME = {
    "primary_color": "#0B1F3A",
    "secondary_color": "#FFFFFF",
    "background_image_url": None,
}


class ScoreboardTheme(BaseModel):
    primary_color: str = DEFAULT_THEME["primary_color"]
    secondary_color: str = DEFAULT_THEME["secondary_color"]
    background_image_url: Optional[str] = None


class RegistrationWindow(BaseModel):
    opens_at: Optional[str] = None
    closes_at: Optional[str] = None


class ScoreboardEdition(BaseModel):
    id: int
    competition_id: int
    competition_slug: str
    competition_name: str
    label: str
    slug: str
    status: str
    format: str
    timezone: str
    published_at: Optional[str] = None
    registration_window: RegistrationWindow = Field(default_factory=RegistrationWindow)
    scoreboard_rotation_seconds: int = DEFAULT_ROTATION_SECONDS
    scoreboard_modules: list[ScoreboardSection] = Field(default_factory=lambda: list(DEFAULT_ROTATION))
    scoreboard_theme: ScoreboardTheme = Field(default_factory=ScoreboardTheme)


class ScoreboardMatchSide(BaseModel):
    entry_id: Optional[int] = None
    name: str
    score: int = Field(default=0, ge=0)


class ScoreboardMatch(BaseModel):
    id: int
    status: str
    kickoff_at: str
    code: Optional[str] = None
    venue_name: Optional[str] = None
    home: ScoreboardMatchSide
    away: ScoreboardMatchSide


class ScoreboardStanding(BaseModel):
    entry_id: int
    position: int
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    fair_play_score: Optional[int] = None


class ScoreboardTopScorer(BaseModel):
    person_id: int
    entry_id: int
    name: str
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0


class ScoreboardEntry(BaseModel):
    id: int
    name: str


class ScoreboardPayload(BaseModel):
    """Public, cache-friendly projection of one edition."""

    edition: ScoreboardEdition
    matches: list[ScoreboardMatch] = Field(default_factory=list)
    standings: list[ScoreboardStanding] = Field(default_factory=list)
    top_scorers: list[ScoreboardTopScorer] = Field(default_factory=list)
    rotation: list[ScoreboardSection] = Field(default_factory=lambda: list(DEFAULT_ROTATION))
    overlay_message: Optional[str] = None
    entries: list[ScoreboardEntry] = Field(default_factory=list)


def normalize_modules(value) -> list[str]:
    """Keep known sections in order, drop duplicates; fall back to the default rotation."""
    if not isinstance(value, (list, tuple)):
        return list(DEFAULT_ROTATION)
    modules: list[str] = []
    for item in value:
        if item in DEFAULT_ROTATION and item not in modules:
            modules.append(item)
    return modules or list(DEFAULT_ROTATION)
