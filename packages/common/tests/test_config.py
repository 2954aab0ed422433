"""Tests for Settings loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from oracle_kb_common.config import Settings, get_settings


class TestSettings:
    """Test Settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ORACLE_LOG_LEVEL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.chroma_collection == "oracle_knowledge"
        assert settings.lexical_decay == pytest.approx(0.3)
        assert settings.lexical_weight == pytest.approx(0.5)
        assert settings.semantic_weight == pytest.approx(0.5)
        assert settings.corroboration_boost == pytest.approx(1.1)
        assert settings.content_preview_chars == 500
        assert settings.api_port == 47778

    def test_semantic_timeout_covers_reconnect(self, monkeypatch):
        """A semantic leg that has to respawn chroma-mcp still has time to query."""
        monkeypatch.delenv("ORACLE_SEMANTIC_TIMEOUT_SECONDS", raising=False)
        monkeypatch.delenv("ORACLE_CHROMA_HANDSHAKE_TIMEOUT_SECONDS", raising=False)
        settings = Settings(_env_file=None)

        assert settings.semantic_timeout_seconds > settings.chroma_handshake_timeout_seconds
        assert settings.semantic_timeout_seconds - settings.chroma_handshake_timeout_seconds >= 5.0

    def test_environment_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ORACLE_DB_PATH", str(tmp_path / "kb.db"))
        monkeypatch.setenv("ORACLE_SEMANTIC_TIMEOUT_SECONDS", "2.5")

        settings = Settings(_env_file=None)

        assert settings.db_path == Path(tmp_path / "kb.db")
        assert settings.semantic_timeout_seconds == pytest.approx(2.5)

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
