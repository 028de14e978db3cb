from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import AppSettings, AuthSettings, Settings, get_settings
from domain import NullSelectionPolicy
from scripts.config_check import run_checks


def test_cors_origins_model_default_is_wildcard() -> None:
    assert AppSettings().cors_origins == ["*"]


def test_cors_origins_uses_toml_value_when_env_not_set(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APP__CORS_ORIGINS", raising=False)

    settings = Settings(_env_file=None)

    assert settings.app.cors_origins == [
        "http://localhost:5173",
        "http://localhost:8000",
    ]


def test_cors_origins_accepts_json_array_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "APP__CORS_ORIGINS",
        '["https://app.example.com","http://localhost:5173"]',
    )

    settings = Settings(_env_file=None)

    assert settings.app.cors_origins == [
        "https://app.example.com",
        "http://localhost:5173",
    ]


def test_cors_origins_accepts_comma_separated_value() -> None:
    assert AppSettings(cors_origins="https://a.example.com, ,https://b.example.com").cors_origins == [
        "https://a.example.com",
        "https://b.example.com",
    ]


def test_researcher_allowlist_is_lowercased() -> None:
    auth = AuthSettings(researcher_allowlist="Alice@Example.com,bob@example.com")

    assert auth.researcher_allowlist == ["alice@example.com", "bob@example.com"]


def test_scoring_policy_from_nested_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCORING__NULL_SELECTION_POLICY", "exclude")
    monkeypatch.setenv("SCORING__INCLUDE_CLICK_TIMEOUTS", "true")

    settings = Settings(_env_file=None)

    assert settings.scoring.null_selection_policy is NullSelectionPolicy.EXCLUDE
    assert settings.scoring.include_click_timeouts is True


def test_unknown_scoring_policy_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCORING__NULL_SELECTION_POLICY", "ignore")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_export_batch_size_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, exports={"stream_batch_size": 0})


@pytest.mark.parametrize(
    ("url", "expected_async"),
    [
        ("postgresql://u:p@db.example.com/uxr", "postgresql+asyncpg://u:p@db.example.com/uxr"),
        ("postgres://u:p@db.example.com/uxr", "postgresql+asyncpg://u:p@db.example.com/uxr"),
        ("postgresql+asyncpg://u:p@db.example.com/uxr", "postgresql+asyncpg://u:p@db.example.com/uxr"),
    ],
)
def test_database_urls_are_normalized(url: str, expected_async: str) -> None:
    settings = Settings(_env_file=None, database={"url": url})

    assert settings.async_database_url == expected_async
    assert settings.sync_database_url == "postgresql://u:p@db.example.com/uxr"


def test_unsupported_database_url_is_rejected() -> None:
    settings = Settings(_env_file=None, database={"url": "mysql://u:p@localhost/uxr"})

    with pytest.raises(RuntimeError, match="DATABASE__URL"):
        settings.sync_database_url


def test_legacy_env_keys_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADMIN_ALLOWLIST", "someone@example.com")
    get_settings.cache_clear()

    try:
        with pytest.raises(RuntimeError, match="AUTH__RESEARCHER_ALLOWLIST"):
            get_settings()
    finally:
        get_settings.cache_clear()


def test_production_check_flags_development_defaults() -> None:
    settings = Settings(
        _env_file=None,
        auth={"cookie_secure": False, "researcher_allowlist": []},
    )

    result = run_checks("production", settings)

    assert not result.ok
    assert any("AUTH__SESSION_SECRET" in error for error in result.errors)
    assert any("AUTH__COOKIE_SECURE" in error for error in result.errors)
    assert any("DATABASE__URL" in error for error in result.errors)
    assert any("AUTH__RESEARCHER_ALLOWLIST" in warning for warning in result.warnings)


def test_production_check_passes_for_hosted_settings() -> None:
    settings = Settings(
        _env_file=None,
        app={"cors_origins": ["https://research.example.com"]},
        database={"url": "postgresql://u:p@db.example.com:5432/uxr"},
        auth={
            "session_secret": "x" * 48,
            "cookie_secure": True,
            "researcher_allowlist": ["lead@example.com"],
            "jwks_url": "https://id.example.com/.well-known/jwks.json",
            "issuer": "https://id.example.com",
        },
    )

    result = run_checks("production", settings)

    assert result.ok, result.errors
    assert result.warnings == []
