from __future__ import annotations

import pydantic
import pytest

import src.config.settings as settings_module
from src.config.settings import Settings, load_settings

_ENV_VARS = (
    "DATABASE_PATH",
    "DB_TIMEOUT",
    "JWT_SECRET",
    "TOKEN_TTL_DAYS",
    "WECHAT_APPID",
    "WECHAT_SECRET",
    "WECHAT_BASE_URL",
    "REQUEST_TIMEOUT",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Prevent picking up values from a real .env during the test
    monkeypatch.setattr(settings_module, "load_dotenv", lambda *a, **k: None)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = load_settings()
    assert s.database_path == settings_module.DEFAULT_DATABASE_PATH
    assert s.db_timeout == 5.0
    assert s.jwt_secret is None
    assert s.token_ttl_days == 7
    assert s.wechat_base_url == settings_module.WECHAT_BASE_URL
    assert (s.default_page_size, s.max_page_size) == (10, 100)


def test_values_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_PATH", "/tmp/x.sqlite3")
    monkeypatch.setenv("DB_TIMEOUT", "2.5")
    monkeypatch.setenv("JWT_SECRET", "s")
    monkeypatch.setenv("TOKEN_TTL_DAYS", "3")
    monkeypatch.setenv("WECHAT_APPID", "app")
    monkeypatch.setenv("WECHAT_SECRET", "sec")
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "20")
    monkeypatch.setenv("MAX_PAGE_SIZE", "50")

    s = load_settings()
    assert s.database_path == "/tmp/x.sqlite3"
    assert s.db_timeout == 2.5
    assert s.require_jwt_secret() == "s"
    assert s.token_ttl_days == 3
    assert (s.wechat_appid, s.wechat_secret) == ("app", "sec")
    assert (s.default_page_size, s.max_page_size) == (20, 50)


def test_blank_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKEN_TTL_DAYS", " ")
    monkeypatch.setenv("JWT_SECRET", "")
    s = load_settings()
    assert s.token_ttl_days == 7
    with pytest.raises(RuntimeError):
        s.require_jwt_secret()


@pytest.mark.parametrize("name,value", [("DB_TIMEOUT", "soon"), ("MAX_PAGE_SIZE", "lots")])
def test_malformed_numbers_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        load_settings()


def test_default_page_size_cannot_exceed_max(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "200")
    with pytest.raises(RuntimeError):
        load_settings()


def test_settings_are_frozen() -> None:
    s = Settings()
    with pytest.raises(pydantic.ValidationError):
        s.database_path = "other"  # type: ignore[misc]
