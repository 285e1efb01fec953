"""
Attempt journal.

Append-only JSONL log with one line per strategy attempt, so partial
failures (a proxy that is down, a server returning an error page) can be
inspected after the acquisition has moved on.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from shelf.logging import get_logger
from shelf.types import AttemptOutcome, utc_now

logger = get_logger(__name__)


class AttemptJournal:
    """Append-only record of acquisition attempts."""

    def __init__(self, path: str | Path) -> None:
        """Initialize the journal.

        Args:
            path: JSONL file to append to. Parent directories are created on first write.
        """
        self.path = Path(path)

    def record(self, acquisition_id: str, url: str, outcome: AttemptOutcome) -> None:
        """Append one attempt. Write failures are logged, never raised."""
        line: dict[str, Any] = {
            "ts": utc_now().isoformat(),
            "acquisition_id": acquisition_id,
            "url": url,
            "strategy": outcome.kind.value,
            "label": outcome.label,
            "requested_url": outcome.requested_url,
            "ok": outcome.ok,
            "error": outcome.error,
            "size_bytes": outcome.size_bytes,
            "elapsed_seconds": round(outcome.elapsed_seconds, 4),
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "ab") as f:
                f.write(orjson.dumps(line) + b"\n")
        except OSError as e:
            logger.warning("Could not write attempt journal", path=str(self.path), error=str(e))

    def read(self, acquisition_id: str | None = None) -> list[dict[str, Any]]:
        """Read journal lines, optionally filtered to one acquisition."""
        if not self.path.exists():
            return []

        records: list[dict[str, Any]] = []
        with open(self.path, "rb") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                data = orjson.loads(line)
                if acquisition_id is None or data.get("acquisition_id") == acquisition_id:
                    records.append(data)
        return records
