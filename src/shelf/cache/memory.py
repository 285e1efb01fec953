"""
In-memory document cache for tests and runs that should not touch disk.
"""

from __future__ import annotations

import hashlib
from typing import Any

from shelf.cache.base import DocumentCache
from shelf.types import CacheEntry, utc_now


class MemoryDocumentCache(DocumentCache):
    """Dict-backed cache. Contents are lost when the process exits."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get_entry(self, url: str) -> CacheEntry | None:
        return self._entries.get(url)

    async def put(self, url: str, payload: bytes, source: str = "direct") -> CacheEntry:
        entry = CacheEntry(
            url=url,
            payload=payload,
            content_hash=hashlib.sha256(payload).hexdigest(),
            stored_at=utc_now(),
            source=source,
        )
        self._entries[url] = entry
        return entry

    async def delete(self, url: str) -> bool:
        return self._entries.pop(url, None) is not None

    async def clear(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        return removed

    async def urls(self) -> list[str]:
        return list(self._entries)

    async def stats(self) -> dict[str, Any]:
        by_source: dict[str, int] = {}
        for entry in self._entries.values():
            by_source[entry.source] = by_source.get(entry.source, 0) + 1
        return {
            "cache_dir": None,
            "entries": len(self._entries),
            "total_bytes": sum(e.size_bytes for e in self._entries.values()),
            "blobs": len({e.content_hash for e in self._entries.values()}),
            "by_source": by_source,
        }
