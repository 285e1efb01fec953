"""
Cache package for downloaded documents.

This package provides:
- DocumentCache (base.py): Abstract interface with an explicit open/close lifecycle
- SQLiteDocumentCache (sqlite_cache.py): aiosqlite index plus content-addressed blob files
- MemoryDocumentCache (memory.py): Dict-backed cache for tests and ephemeral runs
"""

from shelf.cache.base import DocumentCache
from shelf.cache.memory import MemoryDocumentCache
from shelf.cache.sqlite_cache import SQLiteDocumentCache

__all__ = ["DocumentCache", "MemoryDocumentCache", "SQLiteDocumentCache"]
