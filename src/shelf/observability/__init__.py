"""
Observability for acquisitions.

- AttemptJournal (journal.py): Append-only JSONL record of every strategy attempt
"""

from shelf.observability.journal import AttemptJournal

__all__ = ["AttemptJournal"]
