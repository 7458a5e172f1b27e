"""
Tests for configuration loading.
"""

import json

import pytest
import pydantic

from gamification_engine.common.config import AppConfig, ConfigLoader, GamificationConfig


def test_defaults():
    config = ConfigLoader(environ={}).load()

    assert config.gamification.max_retries == 5
    assert config.gamification.max_level == 10000
    assert config.gamification.store_backend == "memory"
    assert config.api.prefix == "/api"


def test_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "gamification:\n"
        "  max_retries: 8\n"
        "  store_backend: redis\n"
        "redis:\n"
        "  host: cache.internal\n"
    )

    config = ConfigLoader(str(path), environ={}).load()

    assert config.gamification.max_retries == 8
    assert config.gamification.store_backend == "redis"
    assert config.redis.host == "cache.internal"
    assert config.redis.connection_string == "redis://cache.internal:6379/0"


def test_json_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"database": {"url": "sqlite+aiosqlite:///:memory:"}}))

    config = ConfigLoader(str(path), environ={}).load()

    assert config.database.url == "sqlite+aiosqlite:///:memory:"


def test_environment_wins_over_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("gamification:\n  max_retries: 8\n  max_level: 500\n")

    config = ConfigLoader(str(path), environ={
        "GAMIFICATION_MAX_RETRIES": "12",
        "GAMIFICATION_STORE": "SQL",
        "LOG_LEVEL": "debug",
    }).load()

    assert config.gamification.max_retries == 12
    assert config.gamification.max_level == 500
    assert config.gamification.store_backend == "sql"
    assert config.logging.level == "DEBUG"


def test_missing_file_falls_back_to_defaults(tmp_path):
    config = ConfigLoader(str(tmp_path / "absent.yaml"), environ={}).load()
    assert config == AppConfig()


def test_invalid_backend():
    with pytest.raises(pydantic.ValidationError):
        GamificationConfig(store_backend="mongo")


def test_retry_budget_must_be_positive():
    with pytest.raises(pydantic.ValidationError):
        GamificationConfig(max_retries=0)


def test_backoff_cannot_be_negative():
    with pytest.raises(pydantic.ValidationError):
        ConfigLoader(environ={"GAMIFICATION_RETRY_BACKOFF": "-1"}).load()
