"""Tests for configuration management."""

import pytest

from src.utils.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    monkeypatch.delenv("STOREFRONT_ENV", raising=False)
    monkeypatch.delenv("STOREFRONT_DATABASE_URL", raising=False)
    monkeypatch.delenv("STOREFRONT_ISOLATION_LEVEL", raising=False)
    reset_config()
    yield
    reset_config()


def test_default_sqlite_url():
    config = Config("development")

    assert config.database_url.startswith("sqlite:///")
    assert config.database_url.endswith("storefront_catalog.db")
    assert config.is_sqlite is True
    assert config.isolation_level is None


def test_database_url_override_uses_serializable(monkeypatch):
    monkeypatch.setenv("STOREFRONT_DATABASE_URL", "postgresql://catalog@localhost/catalog")

    config = Config()

    assert config.database_url == "postgresql://catalog@localhost/catalog"
    assert config.is_sqlite is False
    assert config.isolation_level == "SERIALIZABLE"
    assert config.database_exists() is True


def test_isolation_level_override(monkeypatch):
    monkeypatch.setenv("STOREFRONT_ISOLATION_LEVEL", "repeatable read")

    assert Config().isolation_level == "REPEATABLE READ"


def test_get_config_singleton(monkeypatch):
    monkeypatch.setenv("STOREFRONT_ENV", "development")

    config = get_config()

    assert config.is_development is True
    assert get_config("production") is config
