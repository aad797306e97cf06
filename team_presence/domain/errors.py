"""Failure kinds and the result type returned by repositories and services.

Repositories never let storage exceptions escape: every public operation
returns either :class:`Ok` wrapping the value or a :class:`Failure` naming one
of the :class:`ErrorKind` values. The HTTP layer maps each kind to a fixed
status code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_TRANSITION = "invalid_transition"
    EMPTY_UPDATE = "empty_update"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    details: tuple[FieldError, ...] = ()
    # Raw cause for logs and non-production responses; never compared.
    cause: str | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def validation(cls, field_name: str, message: str) -> "Failure":
        return cls(ErrorKind.VALIDATION, message, (FieldError(field_name, message),))

    @classmethod
    def not_found(cls, entity: str, ident: Any) -> "Failure":
        return cls(ErrorKind.NOT_FOUND, f"{entity} {ident} not found")

    @classmethod
    def invalid_transition(cls, message: str) -> "Failure":
        return cls(ErrorKind.INVALID_TRANSITION, message)


Result = Union[Ok[T], Failure]
