from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional, Sequence

from src.domain.errors import ConflictError, PersistenceError
from src.logging_config import get_logger

from ..store import ExecResult, RecordStore, Statement

logger = get_logger("repositories.sqlite")

_CONFLICT_MARKERS = ("UNIQUE constraint failed", "PRIMARY KEY constraint failed")
_CONFLICT_CODES = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}


def connect(path: str | Path, *, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a connection configured the way :class:`RecordStoreSqlite` expects.

    ``timeout`` bounds how long a write waits on a locked database before
    failing with ``database is locked``.
    """
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=timeout)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _translate(exc: sqlite3.Error) -> PersistenceError:
    message = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        code = getattr(exc, "sqlite_errorname", "")
        if code in _CONFLICT_CODES or any(m in message for m in _CONFLICT_MARKERS):
            return ConflictError(message)
    return PersistenceError(message)


class RecordStoreSqlite(RecordStore):
    """SQLite implementation of :class:`RecordStore`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON;")

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def query(self, stmt: Statement) -> list[dict[str, Any]]:
        try:
            cur = self._conn.execute(stmt.sql, stmt.params)
            return [dict(row) for row in cur.fetchall()]
        except sqlite3.Error as exc:
            logger.warning("Query failed", extra={"sql": stmt.sql, "error": str(exc)})
            raise _translate(exc) from exc

    def query_one(self, stmt: Statement) -> Optional[dict[str, Any]]:
        try:
            cur = self._conn.execute(stmt.sql, stmt.params)
            row = cur.fetchone()
        except sqlite3.Error as exc:
            logger.warning("Query failed", extra={"sql": stmt.sql, "error": str(exc)})
            raise _translate(exc) from exc
        return dict(row) if row is not None else None

    def execute(self, stmt: Statement) -> ExecResult:
        try:
            cur = self._conn.execute(stmt.sql, stmt.params)
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            logger.warning("Statement failed", extra={"sql": stmt.sql, "error": str(exc)})
            raise _translate(exc) from exc
        return ExecResult(rowcount=max(cur.rowcount, 0), lastrowid=cur.lastrowid)

    def execute_batch(self, stmts: Sequence[Statement]) -> list[ExecResult]:
        if not stmts:
            return []
        results: list[ExecResult] = []
        current: Statement | None = None
        try:
            if self._conn.in_transaction:
                self._conn.commit()
            self._conn.execute("BEGIN")
            for current in stmts:
                cur = self._conn.execute(current.sql, current.params)
                results.append(ExecResult(rowcount=max(cur.rowcount, 0), lastrowid=cur.lastrowid))
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            failed = current or stmts[0]
            logger.warning(
                "Batch rolled back",
                extra={"sql": failed.sql, "size": len(stmts), "error": str(exc)},
            )
            raise _translate(exc) from exc
        return results
