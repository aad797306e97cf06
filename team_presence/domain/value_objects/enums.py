from enum import Enum


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class MatchType(str, Enum):
    CHAMPIONSHIP = "championship"
    CUP = "cup"
    FRIENDLY = "friendly"
    TRAINING = "training"


class PresenceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class UserRole(str, Enum):
    ADMIN = "admin"
    COACH = "coach"
    PLAYER = "player"
    STAFF = "staff"


# Roles allowed to manage fixtures and submit rosters.
MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.COACH})

# Roles listed on a match roster.
ROSTER_ROLES = (UserRole.PLAYER, UserRole.COACH, UserRole.STAFF)
