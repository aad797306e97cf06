from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..value_objects.clock import as_utc
from ..value_objects.enums import MatchStatus, MatchType
from ..value_objects.ids import MatchId, UserId

OPPONENT_PATTERN = r"^[\w\s\-'.]+$"

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Match(BaseModel):
    """A scheduled fixture as stored."""

    id: MatchId = Field(..., description="Unique identifier of the match")
    opponent: str = Field(..., description="Opposing team name")
    location: str = Field(..., description="Venue")
    date: datetime = Field(..., description="Kickoff time in UTC")
    is_home: bool = Field(default=True, description="Whether the team plays at home")
    type: MatchType = Field(default=MatchType.CHAMPIONSHIP)
    status: MatchStatus = Field(default=MatchStatus.SCHEDULED)
    score_team: int | None = Field(default=None, ge=0)
    score_opponent: int | None = Field(default=None, ge=0)
    presence_open: bool = Field(default=False, description="Roster confirmations accepted")
    man_of_match_id: UserId | None = Field(default=None)
    description: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True, **_CAMEL)

    @field_validator("date", "created_at", "updated_at", mode="after")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED


class MatchDraft(BaseModel):
    """Fields accepted when creating a match."""

    opponent: str = Field(..., min_length=2, max_length=100, pattern=OPPONENT_PATTERN)
    location: str = Field(..., min_length=2, max_length=200)
    date: datetime
    is_home: bool = True
    type: MatchType = MatchType.CHAMPIONSHIP
    status: MatchStatus = MatchStatus.SCHEDULED
    score_team: int | None = Field(default=None, ge=0)
    score_opponent: int | None = Field(default=None, ge=0)
    presence_open: bool = False
    man_of_match_id: UserId | None = None
    description: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid", **_CAMEL)

    @field_validator("date", mode="after")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


# Columns that may not be explicitly set to null in a partial update.
NON_NULLABLE_FIELDS = ("opponent", "location", "date", "is_home", "type", "status", "presence_open")


class MatchChanges(BaseModel):
    """A partial update. Only fields explicitly provided are applied."""

    opponent: str | None = Field(
        default=None, min_length=2, max_length=100, pattern=OPPONENT_PATTERN
    )
    location: str | None = Field(default=None, min_length=2, max_length=200)
    date: datetime | None = None
    is_home: bool | None = None
    type: MatchType | None = None
    status: MatchStatus | None = None
    score_team: int | None = Field(default=None, ge=0)
    score_opponent: int | None = Field(default=None, ge=0)
    presence_open: bool | None = None
    man_of_match_id: UserId | None = None
    description: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid", **_CAMEL)

    @field_validator("date", mode="after")
    @classmethod
    def _ensure_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _reject_nulls(self) -> "MatchChanges":
        for name in NON_NULLABLE_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self
