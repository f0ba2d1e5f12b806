from __future__ import annotations

import sqlite3
from collections.abc import Callable, Generator

import pytest

from src.application.context import RequestContext
from src.db.migrate import run_migrations
from src.repositories.sqlite.store_sqlite import RecordStoreSqlite, connect
from src.repositories.store import Statement


@pytest.fixture
def conn() -> Generator[sqlite3.Connection, None, None]:
    c = connect(":memory:")
    run_migrations(c)
    yield c
    c.close()


@pytest.fixture
def store(conn: sqlite3.Connection) -> RecordStoreSqlite:
    return RecordStoreSqlite(conn)


@pytest.fixture
def make_user(store: RecordStoreSqlite) -> Callable[..., RequestContext]:
    """Insert a user row and return a signed-in context for it."""

    def _make(user_id: str, nickname: str | None = None) -> RequestContext:
        store.execute(
            Statement("INSERT INTO users (id, nickname) VALUES (?, ?)", (user_id, nickname or user_id))
        )
        return RequestContext.for_user(user_id, request_id=f"req-{user_id}")

    return _make
