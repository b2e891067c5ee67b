import pydantic
import pytest

from backend.app.core.config import Settings


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("  sqlite+aiosqlite:///./local.db ", "sqlite+aiosqlite:///./local.db"),
    ],
)
def test_database_url_normalization(raw, expected):
    assert make_settings(DATABASE_URL=raw).DATABASE_URL == expected


def test_cors_origins_parsing():
    assert make_settings(CORS_ORIGINS="").BACKEND_CORS_ORIGINS == []
    assert make_settings(CORS_ORIGINS=" https://a.example , ,https://b.example").BACKEND_CORS_ORIGINS == [
        "https://a.example",
        "https://b.example",
    ]


def test_defaults():
    settings = make_settings()
    assert settings.SESSION_TTL_HOURS == 24
    assert settings.API_V1_STR == "/api/v1"
    assert settings.is_sqlite
    assert not settings.is_production


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SESSION_TTL_HOURS", "2")
    monkeypatch.setenv("environment", "Production")
    settings = make_settings()
    assert settings.SESSION_TTL_HOURS == 2
    assert settings.is_production


def test_settings_are_frozen():
    settings = make_settings()
    with pytest.raises(pydantic.ValidationError):
        settings.SESSION_TTL_HOURS = 48
