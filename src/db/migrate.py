"""Simple SQLite migration runner."""

from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from typing import Iterable

from src.logging_config import get_logger

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

logger = get_logger("db.migrate")


def applied_versions(cursor: sqlite3.Cursor) -> set[str]:
    cursor.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version TEXT PRIMARY KEY)")
    rows = cursor.execute("SELECT version FROM schema_migrations").fetchall()
    return {row[0] for row in rows}


def available_migrations(directory: Path = MIGRATIONS_DIR) -> Iterable[tuple[str, Path]]:
    pattern = re.compile(r"V(\d+)__.+\.sql$")
    found: list[tuple[int, str, Path]] = []
    for path in directory.glob("V*__*.sql"):
        match = pattern.match(path.name)
        if match:
            found.append((int(match.group(1)), match.group(1), path))
    for _, version, path in sorted(found):
        yield version, path


def run_migrations(conn: sqlite3.Connection, directory: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending migrations in version order and return the versions applied."""
    conn.execute("PRAGMA foreign_keys = ON;")
    cursor = conn.cursor()
    done = applied_versions(cursor)
    conn.commit()
    applied: list[str] = []
    for version, path in available_migrations(directory):
        if version in done:
            continue
        sql = path.read_text(encoding="utf-8")
        cursor.executescript(sql)
        cursor.execute("INSERT INTO schema_migrations (version) VALUES (?)", (version,))
        conn.commit()
        applied.append(version)
        logger.info("Applied migration", extra={"version": version, "file": path.name})
    return applied
