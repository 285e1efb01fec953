"""
Base class for document caches.

A cache maps a canonical URL to the raw bytes of the document. Callers own
its lifecycle: open() before use and close() afterwards, or use it as an
async context manager.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from shelf.types import CacheEntry


class DocumentCache(ABC):
    """Abstract interface for document caches."""

    @abstractmethod
    async def open(self) -> None:
        """Open the cache.

        Raises:
            CacheUnavailableError: If the backing storage cannot be opened.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the cache. Safe to call more than once."""
        ...

    @abstractmethod
    async def get_entry(self, url: str) -> CacheEntry | None:
        """Get the cache entry for a canonical URL, or None on a miss."""
        ...

    @abstractmethod
    async def put(self, url: str, payload: bytes, source: str = "direct") -> CacheEntry:
        """Store a payload under its canonical URL, replacing any existing entry."""
        ...

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Delete the entry for a URL. Returns True if one existed."""
        ...

    @abstractmethod
    async def clear(self) -> int:
        """Delete every entry. Returns the number removed."""
        ...

    @abstractmethod
    async def urls(self) -> list[str]:
        """List cached canonical URLs."""
        ...

    @abstractmethod
    async def stats(self) -> dict[str, Any]:
        """Summary counts for display."""
        ...

    async def get(self, url: str) -> bytes | None:
        """Get the cached payload for a canonical URL."""
        entry = await self.get_entry(url)
        return entry.payload if entry else None

    async def exists(self, url: str) -> bool:
        """Check if a URL is cached."""
        return await self.get_entry(url) is not None

    async def __aenter__(self) -> DocumentCache:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
