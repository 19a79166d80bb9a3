"""
Tests for config.py

Environment overrides and in-process updates of the runtime settings.
"""
import pytest

from backend.constituency_api.config import (
    get_config,
    update_config,
    load_config_from_env,
    get_config_dict,
)

ENV_KEYS = [
    "MONGO_URL", "MONGO_DB", "POSTGRES_URL", "SQLITE_PATH", "CLOUDINARY_URL",
    "CLOUDINARY_UPLOAD_PRESET", "UPLOAD_TIMEOUT", "DASHBOARD_CACHE_SECONDS", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def restore_config(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    snapshot = get_config_dict()
    yield
    update_config(**snapshot)


# ── update_config ─────────────────────────────────────────────────────────────

def test_update_config_sets_known_fields():
    config = update_config(mongo_db="district_7", upload_timeout_seconds=30)
    assert config is get_config()
    assert config.mongo_db == "district_7"
    assert config.upload_timeout_seconds == 30


def test_update_config_ignores_unknown_keys():
    update_config(not_a_setting="x")
    assert "not_a_setting" not in get_config_dict()
    assert not hasattr(get_config(), "not_a_setting")


# ── environment ───────────────────────────────────────────────────────────────

def test_load_config_from_env(monkeypatch):
    monkeypatch.setenv("MONGO_URL", "mongodb://db.internal:27017")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("DASHBOARD_CACHE_SECONDS", "120")
    load_config_from_env()

    config = get_config()
    assert config.mongo_url == "mongodb://db.internal:27017"
    assert config.log_level == "DEBUG"
    assert config.dashboard_cache_seconds == 120


def test_invalid_integers_are_ignored(monkeypatch):
    before = get_config_dict()
    monkeypatch.setenv("UPLOAD_TIMEOUT", "soon")
    monkeypatch.setenv("DASHBOARD_CACHE_SECONDS", "one hour")
    load_config_from_env()

    assert get_config().upload_timeout_seconds == before["upload_timeout_seconds"]
    assert get_config().dashboard_cache_seconds == before["dashboard_cache_seconds"]


def test_get_config_dict_is_a_copy():
    settings = get_config_dict()
    assert settings["cloudinary_upload_preset"] == get_config().cloudinary_upload_preset
    settings["mongo_db"] = "changed"
    assert get_config().mongo_db != "changed"
