"""
shelf - textbook acquisition with a persistent cache and proxy fallback.
"""

__version__ = "0.1.0"
