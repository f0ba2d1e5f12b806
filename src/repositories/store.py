from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class Statement:
    """SQL text plus the values bound to its ``?`` placeholders, in order."""

    sql: str
    params: tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        placeholders = self.sql.count("?")
        if placeholders != len(self.params):
            raise ValueError(
                f"Statement expects {placeholders} bound values, got {len(self.params)}"
            )


@dataclass(frozen=True)
class ExecResult:
    rowcount: int
    lastrowid: int | None = None


class RecordStore(ABC):
    """Adapter over one physical relational connection.

    The only component that talks to the database driver. Every method either
    returns or raises a :class:`~src.domain.errors.PersistenceError`.
    """

    @abstractmethod
    def query(self, stmt: Statement) -> list[dict[str, Any]]:
        """Run a read statement and return every row as a column mapping."""

    @abstractmethod
    def query_one(self, stmt: Statement) -> Optional[dict[str, Any]]:
        """Run a read statement and return the first row, if any."""

    @abstractmethod
    def execute(self, stmt: Statement) -> ExecResult:
        """Run and commit a single write statement."""

    @abstractmethod
    def execute_batch(self, stmts: Sequence[Statement]) -> list[ExecResult]:
        """Run write statements as one unit: all commit or none do."""
