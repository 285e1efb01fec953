"""
Custom exception hierarchy for shelf.

All exceptions inherit from ShelfError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from shelf.types import AttemptOutcome


class ShelfError(Exception):
    """Base exception for all shelf errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(ShelfError):
    """Raised when configuration is invalid or missing."""

    pass


class CacheUnavailableError(ShelfError):
    """Raised when the document cache cannot be opened, queried or written.

    The acquisition pipeline treats this as a cache miss on read and
    ignores it on write.

    Context should include:
        - operation: open, get, put, delete, clear
        - url: The canonical URL involved, if any
    """

    pass


class FetchFailedError(ShelfError):
    """Raised when a single fetch attempt fails.

    Context should include:
        - url: The URL actually requested (direct or proxy-wrapped)
        - status_code: HTTP status code if a response was received
    """

    pass


class ValidationFailedError(FetchFailedError):
    """Raised when a fetched payload is smaller than the minimum size.

    Context should include:
        - url: The URL actually requested
        - size: Payload size in bytes
        - min_bytes: The configured threshold
    """

    pass


class AcquisitionExhaustedError(ShelfError):
    """Raised when cache, direct fetch and every proxy have all failed.

    Attributes:
        url: The canonical URL that could not be acquired.
        attempts: Ordered outcomes of every attempt made.
    """

    def __init__(
        self,
        url: str,
        attempts: list[AttemptOutcome] | None = None,
    ) -> None:
        self.url = url
        self.attempts = list(attempts or [])
        super().__init__(
            "All network and proxy attempts failed",
            context={"url": url, "attempts": len(self.attempts)},
        )


class UnknownSubjectError(ShelfError):
    """Raised when a grade or subject is not in the curriculum catalog."""

    pass


class TextbookUnavailableError(ShelfError):
    """Raised when neither the requested textbook nor the default document loads.

    Attributes:
        requested: Exhaustion error for the requested URL.
        fallback: Exhaustion error for the default document URL.
    """

    def __init__(
        self,
        requested: AcquisitionExhaustedError,
        fallback: AcquisitionExhaustedError | None = None,
    ) -> None:
        self.requested = requested
        self.fallback = fallback
        context: dict[str, Any] = {"requested_url": requested.url}
        if fallback is not None:
            context["default_url"] = fallback.url
        super().__init__("Could not load any textbook content", context=context)
