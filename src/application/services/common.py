from __future__ import annotations

import uuid
from datetime import datetime, timezone

from src.domain.errors import NotFoundError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def new_id() -> str:
    return str(uuid.uuid4())


def utc_timestamp(now: datetime | None = None) -> str:
    """Timestamp in the store's ``CURRENT_TIMESTAMP`` text format (UTC)."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def require_found(row, what: str):
    if row is None:
        raise NotFoundError(f"{what} not found")
    return row
