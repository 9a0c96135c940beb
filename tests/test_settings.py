"""Tests for configuration settings."""
import pytest

pytestmark = pytest.mark.unit


def test_engine_defaults():
    """Engine defaults should match the documented tuning."""
    from config.settings import Settings

    settings = Settings(_env_file=None)

    assert settings.half_life_days == 180.0
    assert settings.strength_policy == "reinforced_max"
    assert settings.edge_direction == "bidirectional"
    assert settings.default_max_hops == 3
    assert settings.default_max_paths == 5
    assert settings.dedup_batch_size == 100


def test_env_overrides(monkeypatch):
    """WIG_ environment variables should override defaults."""
    from config.settings import Settings

    monkeypatch.setenv("WIG_MAX_HOPS", "4")
    monkeypatch.setenv("WIG_EDGE_DIRECTION", "directional")
    monkeypatch.setenv("WIG_DB_PATH", "/tmp/wig-test.db")

    settings = Settings(_env_file=None)

    assert settings.default_max_hops == 4
    assert settings.edge_direction == "directional"
    assert str(settings.db_path) == "/tmp/wig-test.db"


def test_field_names_accepted():
    """Settings can be built by field name as well as alias."""
    from config.settings import Settings

    settings = Settings(_env_file=None, dedup_batch_size=10)
    assert settings.dedup_batch_size == 10


def test_invalid_values_rejected(monkeypatch):
    """Out-of-range values should fail validation."""
    from pydantic import ValidationError
    from config.settings import Settings

    monkeypatch.setenv("WIG_HALF_LIFE_DAYS", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
