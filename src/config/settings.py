"""Application settings.

Environment variables are loaded from a ``.env`` file using ``python-dotenv``
and exposed through an immutable Pydantic settings object. Nothing here is
built at import time; call :func:`load_settings` where a configuration is
needed so tests can control the environment first.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_DATABASE_PATH = os.path.join("data", "foodturns.sqlite3")
DEFAULT_DB_TIMEOUT = 5.0  # seconds
DEFAULT_TOKEN_TTL_DAYS = 7
WECHAT_BASE_URL = "https://api.weixin.qq.com/"
REQUEST_TIMEOUT = 10  # seconds
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Settings(BaseModel):
    """Immutable settings object used across the application."""

    database_path: str = DEFAULT_DATABASE_PATH
    db_timeout: float = Field(default=DEFAULT_DB_TIMEOUT, gt=0)
    jwt_secret: str | None = None
    token_ttl_days: int = Field(default=DEFAULT_TOKEN_TTL_DAYS, ge=1)
    wechat_appid: str | None = None
    wechat_secret: str | None = None
    wechat_base_url: str = WECHAT_BASE_URL
    request_timeout: int = REQUEST_TIMEOUT
    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    max_page_size: int = Field(default=MAX_PAGE_SIZE, ge=1)

    model_config = ConfigDict(frozen=True)

    def require_jwt_secret(self) -> str:
        if not self.jwt_secret:
            raise RuntimeError("JWT_SECRET is required to issue or verify tokens")
        return self.jwt_secret


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> Settings:
    """Construct a ``Settings`` instance from the environment (and ``.env``)."""

    load_dotenv()

    default_page_size = _int_env("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    max_page_size = _int_env("MAX_PAGE_SIZE", MAX_PAGE_SIZE)
    if default_page_size > max_page_size:
        raise RuntimeError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")

    return Settings(
        database_path=os.getenv("DATABASE_PATH", DEFAULT_DATABASE_PATH),
        db_timeout=_float_env("DB_TIMEOUT", DEFAULT_DB_TIMEOUT),
        jwt_secret=os.getenv("JWT_SECRET") or None,
        token_ttl_days=_int_env("TOKEN_TTL_DAYS", DEFAULT_TOKEN_TTL_DAYS),
        wechat_appid=os.getenv("WECHAT_APPID") or None,
        wechat_secret=os.getenv("WECHAT_SECRET") or None,
        wechat_base_url=os.getenv("WECHAT_BASE_URL", WECHAT_BASE_URL),
        request_timeout=_int_env("REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )
