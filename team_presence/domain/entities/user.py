from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..value_objects.clock import as_utc
from ..value_objects.enums import UserRole
from ..value_objects.ids import UserId

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class User(BaseModel):
    """A team member. ``password_hash`` never leaves the process."""

    id: UserId
    email: str
    password_hash: str = Field(default="", exclude=True, repr=False)
    display_name: str
    role: UserRole = UserRole.PLAYER
    active: bool = True
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Registration(BaseModel):
    """Sign-up payload."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    display_name: str = Field(..., min_length=2, max_length=100)
    role: UserRole = UserRole.PLAYER

    model_config = ConfigDict(
        str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True
    )

    @field_validator("email", mode="after")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.lower()


class Credentials(BaseModel):
    """Login payload."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)

    model_config = ConfigDict(str_strip_whitespace=True)
