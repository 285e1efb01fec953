"""
Core types for shelf.

This module defines the data structures used throughout the system:
- StrategyKind enum for the acquisition strategies
- Frozen dataclasses for requests, cache entries and fetch results
- AttemptOutcome, the tagged result every strategy returns
- AcquisitionResult and LoadedTextbook returned to callers
- Catalog rows (Subject, GradeLevel)
- Helper functions for ID generation and timestamps
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "acq").

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class StrategyKind(str, Enum):
    """Acquisition strategies, in the order the pipeline tries them."""

    CACHE = "cache"
    DIRECT = "direct"
    PROXY = "proxy"


@dataclass(frozen=True)
class ContentRequest:
    """A request for a document, identified only by its canonical URL."""

    url: str


@dataclass(frozen=True)
class CacheEntry:
    """A cached document keyed by its canonical URL.

    The source records which strategy produced the payload ("direct" or a
    proxy name); it never changes the key.
    """

    url: str
    payload: bytes
    content_hash: str
    stored_at: datetime
    source: str = "direct"

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class FetchResult:
    """Body of one HTTP response and whether it passes size validation."""

    requested_url: str
    status_code: int
    payload: bytes
    min_bytes: int

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    @property
    def is_valid(self) -> bool:
        """True when the payload is at least the minimum size."""
        return len(self.payload) >= self.min_bytes


@dataclass(frozen=True)
class AttemptOutcome:
    """Tagged result of a single strategy attempt.

    Exactly one of payload (when ok) or error (when not ok) is meaningful.
    """

    kind: StrategyKind
    label: str
    requested_url: str
    ok: bool
    payload: bytes | None = None
    error: str | None = None
    elapsed_seconds: float = 0.0

    @classmethod
    def success(
        cls,
        kind: StrategyKind,
        label: str,
        requested_url: str,
        payload: bytes,
        elapsed_seconds: float = 0.0,
    ) -> AttemptOutcome:
        return cls(
            kind=kind,
            label=label,
            requested_url=requested_url,
            ok=True,
            payload=payload,
            elapsed_seconds=elapsed_seconds,
        )

    @classmethod
    def failure(
        cls,
        kind: StrategyKind,
        label: str,
        requested_url: str,
        error: str,
        elapsed_seconds: float = 0.0,
    ) -> AttemptOutcome:
        return cls(
            kind=kind,
            label=label,
            requested_url=requested_url,
            ok=False,
            error=error,
            elapsed_seconds=elapsed_seconds,
        )

    @property
    def size_bytes(self) -> int:
        return len(self.payload) if self.payload is not None else 0


@dataclass
class AcquisitionResult:
    """Payload returned by the pipeline together with how it was obtained."""

    url: str
    payload: bytes
    strategy: StrategyKind
    label: str
    acquisition_id: str = ""
    attempts: list[AttemptOutcome] = field(default_factory=list)

    @property
    def from_cache(self) -> bool:
        return self.strategy == StrategyKind.CACHE

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class Subject:
    """A subject within a grade and the textbook that backs it."""

    id: str
    name: str
    pdf_url: str
    start_page: int | None = None


@dataclass(frozen=True)
class GradeLevel:
    """A grade and its subjects."""

    id: str
    label: str
    subjects: tuple[Subject, ...] = ()


@dataclass
class LoadedTextbook:
    """A textbook ready to hand to a reader.

    Attributes:
        title: Display title of the textbook.
        filename: Suggested filename for the payload.
        payload: Document bytes.
        requested_url: URL the caller asked for.
        served_url: URL whose content was actually served.
        is_substitute: True when the default document stands in for the requested one.
        notice: User-facing explanation, set when is_substitute is True.
        start_page: Page to open on, when the subject defines one.
        acquisition: Pipeline result for the served URL.
    """

    title: str
    filename: str
    payload: bytes
    requested_url: str
    served_url: str
    is_substitute: bool = False
    notice: str | None = None
    start_page: int | None = None
    acquisition: AcquisitionResult | None = None
