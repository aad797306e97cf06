"""Parameterized SQL rendering from ordered clause descriptors.

Callers describe optional filters and assignments as an ordered sequence of
:class:`Clause` objects. A clause whose value is :data:`ABSENT` is skipped;
every other value (``None``, ``0``, ``False`` and ``""`` included) is bound to
a positional placeholder. Placeholders are numbered ``1..N`` in input order and
values are never rendered into the SQL text.

Example:
    >>> stmt = build_select(
    ...     "matches",
    ...     ("id", "date"),
    ...     [where("status", "scheduled"), where("date", ABSENT, Op.GTE)],
    ...     dialect=Dialect.POSTGRES,
    ...     order_by=[("date", "ASC")],
    ...     limit=50,
    ...     offset=0,
    ... )
    >>> stmt.sql
    'SELECT id, date FROM matches WHERE status = $1 ORDER BY date ASC LIMIT $2 OFFSET $3'
    >>> stmt.args
    ('scheduled', 50, 0)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence


class _Absent:
    """Marker for "field not provided"; distinct from ``None``."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


class Dialect(str, Enum):
    POSTGRES = "postgres"
    SQLITE = "sqlite"

    def placeholder(self, index: int) -> str:
        if index < 1:
            raise ValueError("placeholder indices start at 1")
        return f"${index}" if self is Dialect.POSTGRES else f"?{index}"


class Op(str, Enum):
    EQ = "="
    GTE = ">="
    LTE = "<="
    GT = ">"
    LT = "<"
    ASSIGN = "assign"


@dataclass(frozen=True)
class Clause:
    column: str
    value: Any
    op: Op = Op.EQ

    @property
    def present(self) -> bool:
        return self.value is not ABSENT


@dataclass(frozen=True)
class Statement:
    sql: str
    args: tuple[Any, ...]


class EmptyUpdateError(ValueError):
    """Raised when an UPDATE would carry no assignment."""


def where(column: str, value: Any, op: Op = Op.EQ) -> Clause:
    if op is Op.ASSIGN:
        raise ValueError("use assign() for assignment clauses")
    return Clause(column, value, op)


def assign(column: str, value: Any) -> Clause:
    return Clause(column, value, Op.ASSIGN)


_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_DIRECTIONS = {"ASC", "DESC"}


def _ident(name: str) -> str:
    if not _IDENT.match(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


class _Params:
    """Accumulates bound values and hands out contiguous placeholders."""

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect
        self._values: list[Any] = []

    def bind(self, value: Any) -> str:
        self._values.append(value)
        return self._dialect.placeholder(len(self._values))

    @property
    def args(self) -> tuple[Any, ...]:
        return tuple(self._values)


def _render_filters(clauses: Iterable[Clause], params: _Params) -> str:
    parts: list[str] = []
    for clause in clauses:
        if not clause.present:
            continue
        if clause.op is Op.ASSIGN:
            raise ValueError(f"assignment clause {clause.column!r} used as a filter")
        parts.append(f"{_ident(clause.column)} {clause.op.value} {params.bind(clause.value)}")
    return " AND ".join(parts)


def _render_assignments(clauses: Iterable[Clause], params: _Params) -> list[str]:
    parts: list[str] = []
    for clause in clauses:
        if not clause.present:
            continue
        if clause.op is not Op.ASSIGN:
            raise ValueError(f"filter clause {clause.column!r} used as an assignment")
        parts.append(f"{_ident(clause.column)} = {params.bind(clause.value)}")
    return parts


def _render_order(order_by: Sequence[tuple[str, str]]) -> str:
    terms: list[str] = []
    for column, direction in order_by:
        d = direction.upper()
        if d not in _DIRECTIONS:
            raise ValueError(f"invalid sort direction: {direction!r}")
        terms.append(f"{_ident(column)} {d}")
    return ", ".join(terms)


def _returning(columns: Sequence[str]) -> str:
    if not columns:
        return ""
    return " RETURNING " + ", ".join(_ident(c) for c in columns)


def build_select(
    table: str,
    columns: Sequence[str],
    filters: Sequence[Clause] = (),
    *,
    dialect: Dialect,
    order_by: Sequence[tuple[str, str]] = (),
    limit: int | None = None,
    offset: int = 0,
) -> Statement:
    """Render a SELECT; ``limit``/``offset`` take the last two placeholders."""
    params = _Params(dialect)
    sql = f"SELECT {', '.join(_ident(c) for c in columns)} FROM {_ident(table)}"
    predicate = _render_filters(filters, params)
    if predicate:
        sql += f" WHERE {predicate}"
    if order_by:
        sql += f" ORDER BY {_render_order(order_by)}"
    if limit is not None:
        sql += f" LIMIT {params.bind(limit)} OFFSET {params.bind(offset)}"
    return Statement(sql, params.args)


def build_count(table: str, filters: Sequence[Clause] = (), *, dialect: Dialect) -> Statement:
    """Render ``SELECT COUNT(*)`` over the same predicate as :func:`build_select`."""
    params = _Params(dialect)
    sql = f"SELECT COUNT(*) FROM {_ident(table)}"
    predicate = _render_filters(filters, params)
    if predicate:
        sql += f" WHERE {predicate}"
    return Statement(sql, params.args)


def build_insert(
    table: str,
    values: Sequence[Clause],
    *,
    dialect: Dialect,
    returning: Sequence[str] = (),
) -> Statement:
    params = _Params(dialect)
    columns: list[str] = []
    placeholders: list[str] = []
    for clause in values:
        if not clause.present:
            continue
        if clause.op is not Op.ASSIGN:
            raise ValueError(f"filter clause {clause.column!r} used in an insert")
        columns.append(_ident(clause.column))
        placeholders.append(params.bind(clause.value))
    if not columns:
        raise ValueError(f"insert into {table!r} without any column")
    sql = (
        f"INSERT INTO {_ident(table)} ({', '.join(columns)}) "
        f"VALUES ({', '.join(placeholders)}){_returning(returning)}"
    )
    return Statement(sql, params.args)


def build_update(
    table: str,
    assignments: Sequence[Clause],
    *,
    key: tuple[str, Any],
    dialect: Dialect,
    extra: Sequence[Clause] = (),
    returning: Sequence[str] = (),
) -> Statement:
    """Render an UPDATE of the present ``assignments`` for the row matching ``key``.

    ``extra`` assignments (such as ``updated_at``) follow the caller's fields
    and do not count toward emptiness. The key value takes the last
    placeholder.

    :raises EmptyUpdateError: when no assignment in ``assignments`` is present.
    """
    params = _Params(dialect)
    parts = _render_assignments(assignments, params)
    if not parts:
        raise EmptyUpdateError(f"no fields to update on {table!r}")
    parts.extend(_render_assignments(extra, params))
    key_column, key_value = key
    sql = (
        f"UPDATE {_ident(table)} SET {', '.join(parts)} "
        f"WHERE {_ident(key_column)} = {params.bind(key_value)}{_returning(returning)}"
    )
    return Statement(sql, params.args)
