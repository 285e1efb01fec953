"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates proxy templates and thresholds and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known-good document served when a requested textbook cannot be acquired
SAMPLE_PDF_URL = (
    "https://raw.githubusercontent.com/mozilla/pdf.js/ba2edeae/web/"
    "compressed.tracemonkey-pldi-09.pdf"
)

# Passthrough proxies, tried in order after the direct fetch fails
DEFAULT_PROXY_TEMPLATES: list[str] = [
    "allorigins=https://api.allorigins.win/raw?url={url}",
    "corsproxy=https://corsproxy.io/?{url}",
]

# Bodies smaller than this are almost always an HTML error page
DEFAULT_MIN_PAYLOAD_BYTES = 5000

DEFAULT_USER_AGENT = "ShelfTextbookFetcher/0.1"


def split_proxy_templates(entries: list[str]) -> list[tuple[str, str]]:
    """Split "name=template" entries into (name, template) pairs, preserving order.

    Raises:
        ValueError: If an entry is malformed or a name repeats.
    """
    pairs: list[tuple[str, str]] = []
    names: set[str] = set()
    for entry in entries:
        name, sep, template = entry.partition("=")
        name = name.strip()
        template = template.strip()
        if not sep or not name:
            raise ValueError(f"Proxy entry {entry!r} must have the form name=template")
        if "{url}" not in template:
            raise ValueError(f"Proxy template for {name!r} must contain {{url}}")
        if name in names:
            raise ValueError(f"Duplicate proxy name {name!r}")
        names.add(name)
        pairs.append((name, template))
    return pairs


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        CACHE_DIR: Directory holding the document cache
        OUTPUT_DIR: Directory where fetched textbooks are written
        LOG_LEVEL: Logging level
        LOG_FILE: JSON-lines log file (console only when unset)
        MIN_PAYLOAD_BYTES: Payloads smaller than this are rejected
        REQUEST_TIMEOUT: Per-request timeout in seconds (httpx default when unset)
        USER_AGENT: User-Agent header sent with every request
        DEFAULT_DOCUMENT_URL: Substitute document when a textbook is unreachable
        PROXY_TEMPLATES: Ordered "name=template" entries, template contains {url}
        JOURNAL_ENABLED: Record every acquisition attempt to CACHE_DIR/attempts.jsonl
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directories
    CACHE_DIR: Path = Field(default=Path(".cache"), description="Cache directory")
    OUTPUT_DIR: Path = Field(default=Path("textbooks"), description="Output directory")

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON log file")

    # Acquisition
    MIN_PAYLOAD_BYTES: int = Field(
        default=DEFAULT_MIN_PAYLOAD_BYTES,
        ge=0,
        description="Minimum payload size; smaller bodies are treated as error pages",
    )
    REQUEST_TIMEOUT: float | None = Field(
        default=None, description="Request timeout in seconds"
    )
    USER_AGENT: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header for outgoing requests",
    )
    DEFAULT_DOCUMENT_URL: str = Field(
        default=SAMPLE_PDF_URL,
        description="Document substituted when the requested one is unavailable",
    )
    PROXY_TEMPLATES: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROXY_TEMPLATES),
        description="Ordered proxy templates as name=template",
    )
    JOURNAL_ENABLED: bool = Field(
        default=False, description="Write an attempt journal next to the cache"
    )

    @field_validator("PROXY_TEMPLATES")
    @classmethod
    def validate_proxy_templates(cls, v: list[str]) -> list[str]:
        """Validate that every proxy entry is name=template with a {url} slot."""
        split_proxy_templates(v)
        return v

    @field_validator("REQUEST_TIMEOUT")
    @classmethod
    def validate_request_timeout(cls, v: float | None) -> float | None:
        """Validate that an explicit timeout is positive."""
        if v is not None and v <= 0:
            raise ValueError("REQUEST_TIMEOUT must be greater than 0")
        return v

    @field_validator("DEFAULT_DOCUMENT_URL")
    @classmethod
    def validate_default_document_url(cls, v: str) -> str:
        """Validate that the default document is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("DEFAULT_DOCUMENT_URL must be an http(s) URL")
        return v

    @property
    def cache_db_path(self) -> Path:
        """Path of the cache index database."""
        return self.CACHE_DIR / "shelf.db"

    @property
    def journal_path(self) -> Path | None:
        """Path of the attempt journal, or None when disabled."""
        if not self.JOURNAL_ENABLED:
            return None
        return self.CACHE_DIR / "attempts.jsonl"

    def ensure_directories(self) -> None:
        """Create cache and output directories if they don't exist."""
        self.CACHE_DIR.mkdir(parents=True, exist_ok=True)
        self.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | int | float | bool | None]:
        """Return settings as display-friendly values."""
        return {
            "CACHE_DIR": str(self.CACHE_DIR),
            "OUTPUT_DIR": str(self.OUTPUT_DIR),
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
            "MIN_PAYLOAD_BYTES": self.MIN_PAYLOAD_BYTES,
            "REQUEST_TIMEOUT": self.REQUEST_TIMEOUT,
            "USER_AGENT": self.USER_AGENT,
            "DEFAULT_DOCUMENT_URL": self.DEFAULT_DOCUMENT_URL,
            "PROXY_TEMPLATES": ", ".join(self.PROXY_TEMPLATES),
            "JOURNAL_ENABLED": self.JOURNAL_ENABLED,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
