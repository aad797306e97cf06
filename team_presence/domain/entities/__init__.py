from .match import Match, MatchChanges, MatchDraft
from .presence import PresenceEntry, PresenceStats, PresenceSubmission, Roster, RosterEntry
from .user import Credentials, Registration, User

__all__ = [
    "Credentials",
    "Match",
    "MatchChanges",
    "MatchDraft",
    "PresenceEntry",
    "PresenceStats",
    "PresenceSubmission",
    "Registration",
    "Roster",
    "RosterEntry",
    "User",
]
