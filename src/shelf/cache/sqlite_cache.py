"""
Persistent document cache.

Stores raw documents as files under {cache_dir}/blobs/{sha256_hash} and the
URL index in SQLite at {cache_dir}/shelf.db. The index is keyed by the
canonical URL; several URLs may share one blob.
"""

from __future__ import annotations

import hashlib
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from shelf.cache.base import DocumentCache
from shelf.exceptions import CacheUnavailableError
from shelf.logging import get_logger
from shelf.types import CacheEntry, utc_now

logger = get_logger(__name__)


class SQLiteDocumentCache(DocumentCache):
    """Document cache backed by aiosqlite and content-addressed blob files.

    Entries never expire; they live until delete() or clear() is called or
    the directory is removed.
    """

    def __init__(self, cache_dir: str | Path, db_name: str = "shelf.db") -> None:
        """Initialize the cache.

        Args:
            cache_dir: Base directory for cache storage.
            db_name: File name of the index database inside cache_dir.
        """
        self.cache_dir = Path(cache_dir)
        self.blobs_dir = self.cache_dir / "blobs"
        self.db_path = self.cache_dir / db_name
        self._db: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> None:
        """Create directories and the index schema."""
        if self._db is not None:
            return

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.blobs_dir.mkdir(parents=True, exist_ok=True)

            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row

            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    url TEXT PRIMARY KEY,
                    content_hash TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    stored_at TEXT NOT NULL,
                    source TEXT NOT NULL DEFAULT 'direct'
                )
            """)
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_hash ON documents(content_hash)"
            )
            await self._db.commit()
        except (OSError, sqlite3.Error) as e:
            await self.close()
            raise CacheUnavailableError(
                "Could not open document cache",
                context={"operation": "open", "cache_dir": str(self.cache_dir), "error": str(e)},
            ) from e

        logger.debug("Document cache opened", cache_dir=str(self.cache_dir))

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            db, self._db = self._db, None
            try:
                await db.close()
            except sqlite3.Error as e:
                logger.warning("Error closing document cache", error=str(e))

    def _require_db(self, operation: str, url: str | None = None) -> aiosqlite.Connection:
        if self._db is None:
            raise CacheUnavailableError(
                "Document cache is not open",
                context={"operation": operation, "url": url},
            )
        return self._db

    def _get_blob_path(self, content_hash: str) -> Path:
        """Get the path for a blob file based on content hash.

        Uses first 2 chars as subdirectory for better filesystem performance.
        """
        return self.blobs_dir / content_hash[:2] / content_hash

    def _store_blob(self, payload: bytes, content_hash: str) -> None:
        blob_path = self._get_blob_path(content_hash)
        if blob_path.exists():
            return
        blob_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = blob_path.with_suffix(".tmp")
        tmp_path.write_bytes(payload)
        tmp_path.replace(blob_path)
        logger.debug("Stored blob", hash=content_hash[:12], size=len(payload))

    async def get_entry(self, url: str) -> CacheEntry | None:
        db = self._require_db("get", url)

        try:
            async with db.execute(
                "SELECT * FROM documents WHERE url = ?", (url,)
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise CacheUnavailableError(
                "Cache lookup failed",
                context={"operation": "get", "url": url, "error": str(e)},
            ) from e

        if not row:
            return None

        blob_path = self._get_blob_path(row["content_hash"])
        try:
            payload = blob_path.read_bytes()
        except FileNotFoundError:
            logger.warning("Blob file missing, treating as miss", url=url)
            return None
        except OSError as e:
            raise CacheUnavailableError(
                "Could not read cached blob",
                context={"operation": "get", "url": url, "error": str(e)},
            ) from e

        return CacheEntry(
            url=row["url"],
            payload=payload,
            content_hash=row["content_hash"],
            stored_at=datetime.fromisoformat(row["stored_at"]),
            source=row["source"],
        )

    async def put(self, url: str, payload: bytes, source: str = "direct") -> CacheEntry:
        db = self._require_db("put", url)

        content_hash = hashlib.sha256(payload).hexdigest()
        stored_at = utc_now()

        try:
            self._store_blob(payload, content_hash)
            await db.execute(
                """
                INSERT OR REPLACE INTO documents (
                    url, content_hash, size_bytes, stored_at, source
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (url, content_hash, len(payload), stored_at.isoformat(), source),
            )
            await db.commit()
        except (OSError, sqlite3.Error) as e:
            raise CacheUnavailableError(
                "Cache write failed",
                context={"operation": "put", "url": url, "error": str(e)},
            ) from e

        logger.info("Cached document", url=url[:80], size=len(payload), source=source)

        return CacheEntry(
            url=url,
            payload=payload,
            content_hash=content_hash,
            stored_at=stored_at,
            source=source,
        )

    async def delete(self, url: str) -> bool:
        db = self._require_db("delete", url)

        try:
            async with db.execute(
                "SELECT content_hash FROM documents WHERE url = ?", (url,)
            ) as cursor:
                row = await cursor.fetchone()
            if not row:
                return False

            content_hash = row["content_hash"]
            await db.execute("DELETE FROM documents WHERE url = ?", (url,))
            await db.commit()

            # Blob may still back another URL
            async with db.execute(
                "SELECT COUNT(*) FROM documents WHERE content_hash = ?", (content_hash,)
            ) as cursor:
                remaining = await cursor.fetchone()
            if remaining and remaining[0] == 0:
                self._get_blob_path(content_hash).unlink(missing_ok=True)
        except (OSError, sqlite3.Error) as e:
            raise CacheUnavailableError(
                "Cache delete failed",
                context={"operation": "delete", "url": url, "error": str(e)},
            ) from e

        return True

    async def clear(self) -> int:
        db = self._require_db("clear")

        try:
            async with db.execute("SELECT COUNT(*) FROM documents") as cursor:
                row = await cursor.fetchone()
            removed = row[0] if row else 0

            await db.execute("DELETE FROM documents")
            await db.commit()

            shutil.rmtree(self.blobs_dir, ignore_errors=True)
            self.blobs_dir.mkdir(parents=True, exist_ok=True)
        except (OSError, sqlite3.Error) as e:
            raise CacheUnavailableError(
                "Cache clear failed",
                context={"operation": "clear", "error": str(e)},
            ) from e

        logger.info("Cleared document cache", removed=removed)
        return removed

    async def urls(self) -> list[str]:
        db = self._require_db("urls")
        try:
            async with db.execute("SELECT url FROM documents ORDER BY stored_at") as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise CacheUnavailableError(
                "Cache listing failed",
                context={"operation": "urls", "error": str(e)},
            ) from e
        return [row["url"] for row in rows]

    async def stats(self) -> dict[str, Any]:
        """Get statistics about cached documents.

        Returns:
            Dict with entry count, total bytes, distinct blobs and counts by source.

        Raises:
            CacheUnavailableError: If the index cannot be queried.
        """
        db = self._require_db("stats")

        stats: dict[str, Any] = {"cache_dir": str(self.cache_dir)}

        try:
            async with db.execute(
                "SELECT COUNT(*), COALESCE(SUM(size_bytes), 0), COUNT(DISTINCT content_hash) "
                "FROM documents"
            ) as cursor:
                row = await cursor.fetchone()
                stats["entries"] = row[0] if row else 0
                stats["total_bytes"] = row[1] if row else 0
                stats["blobs"] = row[2] if row else 0

            async with db.execute(
                "SELECT source, COUNT(*) FROM documents GROUP BY source"
            ) as cursor:
                rows = await cursor.fetchall()
                stats["by_source"] = {row[0]: row[1] for row in rows}
        except sqlite3.Error as e:
            raise CacheUnavailableError(
                "Cache stats failed",
                context={"operation": "stats", "error": str(e)},
            ) from e

        return stats
