"""
Library package.

- catalog.py: Curriculum of grades and subjects with their textbook URLs
- loader.py: TextbookLoader, which falls back to the default document
"""

from shelf.library.catalog import CURRICULUM, find_subject, get_grade
from shelf.library.loader import TextbookLoader

__all__ = ["CURRICULUM", "TextbookLoader", "find_subject", "get_grade"]
