from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Mapping, Optional, Sequence, TypeVar

from src.config.settings import MAX_PAGE_SIZE
from src.domain.errors import ValidationError
from src.logging_config import get_logger

from .query_builder import (
    Fragment,
    OrderBy,
    build_count,
    build_delete,
    build_insert,
    build_select,
    build_update,
)
from .store import RecordStore, Statement
from .tables import TableSpec

logger = get_logger("repositories.gateway")

Record = dict[str, Any]
T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


@dataclass(frozen=True)
class CreateResult:
    generated_id: Any
    ok: bool


@dataclass(frozen=True)
class BatchResult:
    ok: bool
    count: int


@dataclass(frozen=True)
class WriteResult:
    """Outcome of an update/delete. ``changed_count == 0`` means nothing matched."""

    ok: bool
    changed_count: int


class TableGateway:
    """Table-agnostic CRUD over one :class:`TableSpec`.

    The gateway never decides who may see a row; callers pass the
    visibility :class:`Fragment` for multi-tenant reads.
    """

    def __init__(
        self, store: RecordStore, spec: TableSpec, *, max_page_size: int = MAX_PAGE_SIZE
    ) -> None:
        self._store = store
        self._spec = spec
        self._max_page_size = max_page_size

    @property
    def spec(self) -> TableSpec:
        return self._spec

    @property
    def store(self) -> RecordStore:
        return self._store

    # ── READ ──────────────────────────────────────────────

    def find_one(self, where: Mapping[str, Any]) -> Optional[Record]:
        if not where:
            raise ValidationError(f"find_one on {self._spec.name} requires a non-empty filter")
        return self._store.query_one(build_select(self._spec, where, limit=1))

    def find_by_id(self, value: Any) -> Optional[Record]:
        if len(self._spec.primary_key) != 1:
            raise ValidationError(f"{self._spec.name} has a composite key; use find_one")
        return self.find_one({self._spec.primary_key[0]: value})

    def find_many(
        self,
        where: Optional[Mapping[str, Any]] = None,
        *,
        extra: Optional[Fragment] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Record]:
        stmt = build_select(
            self._spec, where, extra=extra, order_by=order_by, limit=limit, offset=offset
        )
        rows = self._store.query(stmt)
        logger.debug("find_many", extra={"table": self._spec.name, "rows": len(rows)})
        return rows

    def paginate(
        self,
        where: Optional[Mapping[str, Any]] = None,
        *,
        extra: Optional[Fragment] = None,
        order_by: Optional[OrderBy] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page[Record]:
        """Return one page of rows plus the total for the same predicate.

        The data and count queries are not run in one transaction, so under
        concurrent writes ``total`` may lag ``items``.
        """
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValidationError("page must be an integer >= 1")
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise ValidationError("page_size must be an integer >= 1")
        if page_size > self._max_page_size:
            raise ValidationError(f"page_size cannot exceed {self._max_page_size}")

        offset = (page - 1) * page_size
        items = self.find_many(
            where, extra=extra, order_by=order_by, limit=page_size, offset=offset
        )
        total = self.count(where, extra=extra)
        return Page(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    def count(
        self, where: Optional[Mapping[str, Any]] = None, *, extra: Optional[Fragment] = None
    ) -> int:
        row = self._store.query_one(build_count(self._spec, where, extra=extra))
        return int(row["count"]) if row else 0

    def exists(self, where: Mapping[str, Any]) -> bool:
        if not where:
            raise ValidationError(f"exists on {self._spec.name} requires a non-empty filter")
        return self.count(where) > 0

    # ── WRITE ─────────────────────────────────────────────

    def insert_statement(
        self, data: Mapping[str, Any], *, ignore_conflicts: bool = False
    ) -> Statement:
        return build_insert(self._spec, data, ignore_conflicts=ignore_conflicts)

    def update_statement(self, where: Mapping[str, Any], data: Mapping[str, Any]) -> Statement:
        return build_update(self._spec, where, data)

    def delete_statement(self, where: Mapping[str, Any]) -> Statement:
        return build_delete(self._spec, where)

    def create(self, data: Mapping[str, Any], *, ignore_conflicts: bool = False) -> CreateResult:
        result = self._store.execute(self.insert_statement(data, ignore_conflicts=ignore_conflicts))
        pk = self._spec.primary_key
        if len(pk) == 1 and data.get(pk[0]) is not None:
            generated = data[pk[0]]
        else:
            generated = result.lastrowid
        logger.debug("create", extra={"table": self._spec.name, "rows": result.rowcount})
        # An ignored conflicting insert changes no row.
        return CreateResult(generated_id=generated, ok=result.rowcount == 1)

    def create_many(self, data_list: Sequence[Mapping[str, Any]]) -> BatchResult:
        if not data_list:
            return BatchResult(ok=True, count=0)
        stmts = [self.insert_statement(data) for data in data_list]
        results = self._store.execute_batch(stmts)
        ok = len(results) == len(stmts) and all(r.rowcount == 1 for r in results)
        logger.debug("create_many", extra={"table": self._spec.name, "rows": len(results)})
        return BatchResult(ok=ok, count=len(data_list))

    def update(self, where: Mapping[str, Any], data: Mapping[str, Any]) -> WriteResult:
        result = self._store.execute(self.update_statement(where, data))
        return WriteResult(ok=True, changed_count=result.rowcount)

    def delete(self, where: Mapping[str, Any]) -> WriteResult:
        result = self._store.execute(self.delete_statement(where))
        return WriteResult(ok=True, changed_count=result.rowcount)
