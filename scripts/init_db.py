from __future__ import annotations

import argparse
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    # Ensure project root (containing 'src') is importable
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    from src.config.settings import load_settings
    from src.db.migrate import run_migrations
    from src.repositories.sqlite.store_sqlite import connect

    settings = load_settings()
    parser = argparse.ArgumentParser(description="Apply pending schema migrations to a SQLite database")
    parser.add_argument(
        "--db",
        default=settings.database_path,
        help="Path to SQLite DB file (will be created if missing)",
    )
    args = parser.parse_args(argv)

    conn = connect(args.db, timeout=settings.db_timeout)
    try:
        applied = run_migrations(conn)
    finally:
        conn.close()

    if applied:
        print(f"Applied migrations {', '.join(applied)} to: {Path(args.db).resolve()}")
    else:
        print(f"Schema already up to date: {Path(args.db).resolve()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
