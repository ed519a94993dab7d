"""Database models."""
from kickoff.models.base import Base, init_db
from kickoff.models.competition import Competition, Edition, EditionSettings
from kickoff.models.team import Entry, Team
from kickoff.models.squad import Person, Squad, SquadMember
from kickoff.models.match import Match, MatchEvent, Venue
from kickoff.models.scoreboard import EventFeedItem, ScoreboardHighlight
from kickoff.models.user import RoleInvitation, User, UserRole  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Competition",
    "Edition",
    "EditionSettings",
    "Team",
    "Entry",
    "Person",
    "Squad",
    "SquadMember",
    "Venue",
    "Match",
    "MatchEvent",
    "ScoreboardHighlight",
    "EventFeedItem",
    "User",
    "UserRole",
    "RoleInvitation",
    "init_db",
]
