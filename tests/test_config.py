"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from shelf.acquisition.pipeline import TextbookFetcher
from shelf.config import (
    DEFAULT_MIN_PAYLOAD_BYTES,
    DEFAULT_PROXY_TEMPLATES,
    DEFAULT_USER_AGENT,
    SAMPLE_PDF_URL,
    Settings,
    clear_settings_cache,
    get_settings,
)


class TestSettingsDefaults:
    """Defaults when nothing is configured."""

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.MIN_PAYLOAD_BYTES == 5000
        assert settings.REQUEST_TIMEOUT is None
        assert settings.DEFAULT_DOCUMENT_URL == SAMPLE_PDF_URL
        assert settings.PROXY_TEMPLATES == DEFAULT_PROXY_TEMPLATES
        assert settings.journal_path is None
        assert settings.cache_db_path == Path(".cache") / "shelf.db"

    def test_fetcher_defaults_match_settings(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)
        fetcher = TextbookFetcher()

        assert fetcher.min_bytes == settings.MIN_PAYLOAD_BYTES == DEFAULT_MIN_PAYLOAD_BYTES
        assert fetcher.user_agent == settings.USER_AGENT == DEFAULT_USER_AGENT
        assert [p.name for p in fetcher.proxies] == [
            entry.split("=", 1)[0] for entry in settings.PROXY_TEMPLATES
        ]


class TestSettingsFromEnv:
    """Loading from environment variables."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        settings = get_settings()

        assert settings.CACHE_DIR == Path(mock_env_vars["CACHE_DIR"])
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.DEFAULT_DOCUMENT_URL == mock_env_vars["DEFAULT_DOCUMENT_URL"]

    def test_proxy_templates_from_json_env(self) -> None:
        env = {"PROXY_TEMPLATES": '["solo=https://solo.example/?url={url}"]'}
        with patch.dict(os.environ, env, clear=True):
            clear_settings_cache()
            settings = Settings(_env_file=None)

        assert settings.PROXY_TEMPLATES == ["solo=https://solo.example/?url={url}"]

    def test_get_settings_is_cached(self, mock_env_vars: dict[str, str]) -> None:
        assert get_settings() is get_settings()

    def test_journal_path_when_enabled(self, temp_dir: Path) -> None:
        settings = Settings(_env_file=None, CACHE_DIR=temp_dir, JOURNAL_ENABLED=True)

        assert settings.journal_path == temp_dir / "attempts.jsonl"


class TestSettingsValidation:
    """Validation errors."""

    def test_proxy_template_needs_url_slot(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None, PROXY_TEMPLATES=["bad=https://proxy.example/"])

        assert "{url}" in str(exc_info.value)

    def test_proxy_template_needs_name(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, PROXY_TEMPLATES=["https://proxy.example/?{url}"])

    def test_duplicate_proxy_names(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                _env_file=None,
                PROXY_TEMPLATES=["p=https://a.example/?{url}", "p=https://b.example/?{url}"],
            )

        assert "Duplicate" in str(exc_info.value)

    def test_default_document_must_be_http(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DEFAULT_DOCUMENT_URL="file:///tmp/demo.pdf")

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, MIN_PAYLOAD_BYTES=-1)

    def test_ensure_directories(self, temp_dir: Path) -> None:
        settings = Settings(
            _env_file=None, CACHE_DIR=temp_dir / "c", OUTPUT_DIR=temp_dir / "o"
        )
        settings.ensure_directories()

        assert (temp_dir / "c").is_dir()
        assert (temp_dir / "o").is_dir()
