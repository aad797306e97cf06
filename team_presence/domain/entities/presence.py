from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..value_objects.enums import PresenceStatus, UserRole
from ..value_objects.ids import UserId

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PresenceEntry(BaseModel):
    """One attendance submission: a user and their status."""

    user_id: UserId
    status: PresenceStatus

    model_config = ConfigDict(frozen=True, **_CAMEL)


class PresenceSubmission(BaseModel):
    presences: list[PresenceEntry] = Field(..., min_length=1)

    model_config = ConfigDict(**_CAMEL)


class RosterEntry(BaseModel):
    """An eligible user and their status for one match (``unknown`` if never set)."""

    user_id: UserId
    display_name: str
    email: str
    role: UserRole
    status: PresenceStatus = PresenceStatus.UNKNOWN
    updated_at: datetime | None = None

    model_config = ConfigDict(frozen=True, **_CAMEL)


class PresenceStats(BaseModel):
    present: int = Field(default=0, ge=0)
    absent: int = Field(default=0, ge=0)
    unknown: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _counts_cover_total(self) -> "PresenceStats":
        if self.present + self.absent + self.unknown != self.total:
            raise ValueError("status counts must sum to total")
        return self


class Roster(BaseModel):
    presences: list[RosterEntry]
    stats: PresenceStats

    model_config = ConfigDict(frozen=True)
