"""
Acquisition package.

- TextbookFetcher (pipeline.py): cache -> direct -> proxy chain with size validation
- ProxyRoute (proxies.py): passthrough proxy URL templates
"""

from shelf.acquisition.pipeline import TextbookFetcher, open_fetcher
from shelf.acquisition.proxies import DEFAULT_PROXIES, ProxyRoute

__all__ = ["DEFAULT_PROXIES", "ProxyRoute", "TextbookFetcher", "open_fetcher"]
