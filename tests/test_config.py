"""
Tests for racechat/config.py
Environment-driven settings.
"""
import pytest

from racechat.config import DEFAULT_DATABASE, Settings
from racechat.errors import ConfigurationError


class TestSettingsFromEnv:
    def test_defaults(self, monkeypatch):
        for name in ("GEMINI_API_KEY", "MONGODB_URI", "MONGODB_DATABASE", "SESSION_TIMEOUT_SECONDS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()
        assert settings.gemini_api_key is None
        assert settings.mongodb_uri is None
        assert settings.mongodb_database == DEFAULT_DATABASE
        assert settings.session_timeout_seconds == 30 * 60

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
        monkeypatch.setenv("SESSION_TIMEOUT_SECONDS", "90")

        settings = Settings.from_env()
        assert settings.require_gemini_key() == "abc"
        assert settings.require_mongodb_uri() == "mongodb://localhost:27017"
        assert settings.session_timeout_seconds == 90.0

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("GENERATION_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigurationError):
            Settings.from_env()


class TestRequire:
    def test_missing_values_raise(self):
        settings = Settings()
        with pytest.raises(ConfigurationError):
            settings.require_gemini_key()
        with pytest.raises(ConfigurationError):
            settings.require_mongodb_uri()


class TestMongoStoreFromSettings:
    def test_uses_configured_database(self):
        from racechat.store import MongoDocumentStore

        store = MongoDocumentStore.from_settings(
            Settings(mongodb_uri="mongodb://db:27017", mongodb_database="race_data", mongodb_timeout_ms=250)
        )
        assert store.uri == "mongodb://db:27017"
        assert store.database == "race_data"
        assert store.timeout_ms == 250

    def test_missing_uri(self):
        from racechat.store import MongoDocumentStore

        with pytest.raises(ConfigurationError):
            MongoDocumentStore.from_settings(Settings())
