"""Parameterized SQL builder over :class:`TableSpec` descriptors.

Identifiers are interpolated only after they have been checked against the
table's column set; values are always bound positionally through ``?``
placeholders and never concatenated into the SQL text. Equality filters bind
in the iteration order of the mapping the caller passed; a ``None`` filter
value becomes ``IS NULL`` and binds nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from src.domain.errors import ValidationError

from .store import Statement
from .tables import TableSpec


@dataclass(frozen=True)
class Fragment:
    """A predicate with its own bound values, e.g. a visibility rule."""

    sql: str
    params: tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.sql.count("?") != len(self.params):
            raise ValueError("Fragment placeholder count does not match its params")

    def and_(self, other: "Fragment") -> "Fragment":
        return Fragment(f"({self.sql}) AND ({other.sql})", self.params + other.params)

    @staticmethod
    def all_of(fragments: Iterable["Fragment"]) -> Optional["Fragment"]:
        result: Optional[Fragment] = None
        for frag in fragments:
            result = frag if result is None else result.and_(frag)
        return result


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False

    @classmethod
    def parse(cls, column: str, direction: str = "ASC") -> "OrderBy":
        direction = direction.upper()
        if direction not in {"ASC", "DESC"}:
            raise ValidationError(f"Unknown sort direction {direction!r}")
        return cls(column=column, descending=direction == "DESC")


def contains(spec: TableSpec, column: str, needle: str) -> Fragment:
    """Case-insensitive substring match; ``%`` and ``_`` in ``needle`` match literally."""
    spec.column(column)
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return Fragment(f"{column} LIKE ? ESCAPE '\\'", (f"%{escaped}%",))


def _equality(spec: TableSpec, where: Mapping[str, Any]) -> Fragment:
    spec.check_values(where)
    parts: list[str] = []
    params: list[Any] = []
    for col, value in where.items():
        # "col = NULL" never matches in SQL
        if value is None:
            parts.append(f"{col} IS NULL")
        else:
            parts.append(f"{col} = ?")
            params.append(value)
    return Fragment(" AND ".join(parts), tuple(params))


def _where_clause(
    spec: TableSpec, where: Optional[Mapping[str, Any]], extra: Optional[Fragment]
) -> tuple[str, tuple[Any, ...]]:
    fragments: list[Fragment] = []
    if where:
        fragments.append(_equality(spec, where))
    if extra is not None:
        fragments.append(extra)
    combined = Fragment.all_of(fragments)
    if combined is None:
        return "", ()
    return f" WHERE {combined.sql}", combined.params


def _require_filter(spec: TableSpec, where: Optional[Mapping[str, Any]], op: str) -> None:
    if not where:
        raise ValidationError(f"{op} on {spec.name} requires a non-empty filter")


def _check_page_bounds(limit: Optional[int], offset: Optional[int]) -> None:
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
        raise ValidationError("limit must be a positive integer")
    if offset is not None and (isinstance(offset, bool) or not isinstance(offset, int) or offset < 0):
        raise ValidationError("offset must be a non-negative integer")


def build_select(
    spec: TableSpec,
    where: Optional[Mapping[str, Any]] = None,
    *,
    extra: Optional[Fragment] = None,
    order_by: Optional[OrderBy] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Statement:
    _check_page_bounds(limit, offset)
    columns = ", ".join(spec.column_names)
    clause, params = _where_clause(spec, where, extra)
    sql = f"SELECT {columns} FROM {spec.name}{clause}"
    if order_by is not None:
        spec.check_sortable(order_by.column)
        sql += f" ORDER BY {order_by.column} {'DESC' if order_by.descending else 'ASC'}"
    if limit is not None:
        sql += " LIMIT ?"
        params += (limit,)
        if offset:
            sql += " OFFSET ?"
            params += (offset,)
    elif offset:
        # SQLite needs a LIMIT before OFFSET; -1 means unbounded.
        sql += " LIMIT -1 OFFSET ?"
        params += (offset,)
    return Statement(sql, params)


def build_count(
    spec: TableSpec,
    where: Optional[Mapping[str, Any]] = None,
    *,
    extra: Optional[Fragment] = None,
) -> Statement:
    clause, params = _where_clause(spec, where, extra)
    return Statement(f"SELECT COUNT(*) AS count FROM {spec.name}{clause}", params)


def build_insert(
    spec: TableSpec, data: Mapping[str, Any], *, ignore_conflicts: bool = False
) -> Statement:
    if not data:
        raise ValidationError(f"Insert into {spec.name} requires at least one column")
    spec.check_values(data)
    columns = ", ".join(data.keys())
    placeholders = ", ".join("?" for _ in data)
    verb = "INSERT OR IGNORE" if ignore_conflicts else "INSERT"
    return Statement(
        f"{verb} INTO {spec.name} ({columns}) VALUES ({placeholders})",
        tuple(data.values()),
    )


def build_update(
    spec: TableSpec, where: Mapping[str, Any], data: Mapping[str, Any]
) -> Statement:
    _require_filter(spec, where, "Update")
    if not data:
        raise ValidationError(f"Update of {spec.name} requires at least one column to set")
    spec.check_values(data)
    set_sql = ", ".join(f"{col} = ?" for col in data)
    clause, where_params = _where_clause(spec, where, None)
    return Statement(
        f"UPDATE {spec.name} SET {set_sql}{clause}", tuple(data.values()) + where_params
    )


def build_delete(spec: TableSpec, where: Mapping[str, Any]) -> Statement:
    _require_filter(spec, where, "Delete")
    clause, params = _where_clause(spec, where, None)
    return Statement(f"DELETE FROM {spec.name}{clause}", params)
