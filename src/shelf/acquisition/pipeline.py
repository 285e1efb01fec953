"""
Textbook acquisition pipeline.

Resolves a canonical URL to document bytes by trying, in order:
cache lookup, a direct fetch, then each passthrough proxy. Every strategy
returns an AttemptOutcome; the first ok outcome wins. Network payloads
below the minimum size are rejected as error pages. Successful network
payloads are cached under the canonical URL, never the proxy URL.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from shelf.acquisition.proxies import DEFAULT_PROXIES, ProxyRoute, parse_proxy_templates
from shelf.cache.base import DocumentCache
from shelf.cache.sqlite_cache import SQLiteDocumentCache
from shelf.config import DEFAULT_MIN_PAYLOAD_BYTES, DEFAULT_USER_AGENT, Settings
from shelf.exceptions import (
    AcquisitionExhaustedError,
    CacheUnavailableError,
    FetchFailedError,
    ValidationFailedError,
)
from shelf.logging import get_logger, log_context
from shelf.observability.journal import AttemptJournal
from shelf.types import (
    AcquisitionResult,
    AttemptOutcome,
    ContentRequest,
    FetchResult,
    StrategyKind,
    generate_id,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Strategy:
    """One step of the acquisition chain."""

    kind: StrategyKind
    label: str
    attempt: Callable[[str], Awaitable[AttemptOutcome]]


class TextbookFetcher:
    """Acquires documents through cache, direct fetch and proxy fallbacks.

    Attempts run one at a time; nothing is raced or retried. Concurrent
    acquisitions of the same URL are not coalesced and may each hit the
    network and write the cache.
    """

    def __init__(
        self,
        cache: DocumentCache | None = None,
        client: httpx.AsyncClient | None = None,
        proxies: list[ProxyRoute] | None = None,
        min_bytes: int = DEFAULT_MIN_PAYLOAD_BYTES,
        timeout: float | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        journal: AttemptJournal | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            cache: Document cache; None disables lookup and population.
            client: HTTP client to use. Created lazily when not given.
            proxies: Ordered proxy routes tried after the direct fetch.
            min_bytes: Minimum accepted payload size.
            timeout: Request timeout in seconds; httpx's default when None.
            user_agent: User-Agent header for a lazily created client.
            journal: Optional attempt journal.
        """
        self.cache = cache
        self.proxies = list(DEFAULT_PROXIES if proxies is None else proxies)
        self.min_bytes = min_bytes
        self.timeout = timeout
        self.user_agent = user_agent
        self.journal = journal
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: DocumentCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> TextbookFetcher:
        """Build a fetcher from application settings."""
        journal_path = settings.journal_path
        return cls(
            cache=cache,
            client=client,
            proxies=parse_proxy_templates(settings.PROXY_TEMPLATES),
            min_bytes=settings.MIN_PAYLOAD_BYTES,
            timeout=settings.REQUEST_TIMEOUT,
            user_agent=settings.USER_AGENT,
            journal=AttemptJournal(journal_path) if journal_path else None,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            kwargs: dict[str, object] = {}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                **kwargs,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> TextbookFetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def strategies(self) -> list[Strategy]:
        """The ordered strategy chain: cache, direct, then each proxy."""
        chain: list[Strategy] = []
        cache = self.cache
        if cache is not None:
            chain.append(
                Strategy(StrategyKind.CACHE, "cache", lambda url: self._attempt_cache(cache, url))
            )
        chain.append(
            Strategy(
                StrategyKind.DIRECT,
                "direct",
                lambda url: self._attempt_network(StrategyKind.DIRECT, "direct", url, url),
            )
        )
        for route in self.proxies:
            chain.append(Strategy(StrategyKind.PROXY, route.name, self._proxy_attempt(route)))
        return chain

    def _proxy_attempt(self, route: ProxyRoute) -> Callable[[str], Awaitable[AttemptOutcome]]:
        async def attempt(url: str) -> AttemptOutcome:
            return await self._attempt_network(
                StrategyKind.PROXY, route.name, url, route.wrap(url)
            )

        return attempt

    async def acquire(self, request: ContentRequest | str) -> AcquisitionResult:
        """Resolve a canonical URL to document bytes.

        Args:
            request: The canonical URL or a ContentRequest holding it.

        Returns:
            AcquisitionResult with the payload and the strategy that produced it.

        Raises:
            AcquisitionExhaustedError: If every strategy failed.
        """
        url = request.url if isinstance(request, ContentRequest) else request
        acquisition_id = generate_id("acq")
        attempts: list[AttemptOutcome] = []

        with log_context(acquisition_id=acquisition_id):
            for strategy in self.strategies():
                with log_context(strategy=strategy.label):
                    outcome = await strategy.attempt(url)
                    attempts.append(outcome)
                    if self.journal is not None:
                        self.journal.record(acquisition_id, url, outcome)

                    if not outcome.ok or outcome.payload is None:
                        if strategy.kind != StrategyKind.CACHE:
                            logger.warning(
                                "Attempt failed, trying next strategy",
                                url=outcome.requested_url,
                                error=outcome.error,
                            )
                        continue

                    if strategy.kind != StrategyKind.CACHE:
                        await self._store(url, outcome.payload, source=strategy.label)

                    logger.info(
                        "Acquired document",
                        url=url,
                        size=outcome.size_bytes,
                        attempts=len(attempts),
                    )
                    return AcquisitionResult(
                        url=url,
                        payload=outcome.payload,
                        strategy=strategy.kind,
                        label=strategy.label,
                        acquisition_id=acquisition_id,
                        attempts=attempts,
                    )

            logger.error("All network and proxy attempts failed", url=url, attempts=len(attempts))
            raise AcquisitionExhaustedError(url, attempts)

    async def _attempt_cache(self, cache: DocumentCache, url: str) -> AttemptOutcome:
        started = time.perf_counter()
        try:
            payload = await cache.get(url)
        except CacheUnavailableError as e:
            logger.warning("Cache lookup failed", url=url, error=str(e))
            return AttemptOutcome.failure(
                StrategyKind.CACHE, "cache", url, str(e), time.perf_counter() - started
            )

        elapsed = time.perf_counter() - started
        if payload is None:
            logger.debug("Cache miss", url=url)
            return AttemptOutcome.failure(StrategyKind.CACHE, "cache", url, "miss", elapsed)

        logger.info("Cache hit", url=url, size=len(payload))
        return AttemptOutcome.success(StrategyKind.CACHE, "cache", url, payload, elapsed)

    async def _attempt_network(
        self,
        kind: StrategyKind,
        label: str,
        url: str,
        requested_url: str,
    ) -> AttemptOutcome:
        started = time.perf_counter()
        if kind == StrategyKind.PROXY:
            logger.info("Trying proxy", url=requested_url)
        else:
            logger.info("Attempting direct fetch", url=requested_url)

        try:
            result = await self._fetch(requested_url)
            self._validate(result)
        except FetchFailedError as e:
            return AttemptOutcome.failure(
                kind, label, requested_url, str(e), time.perf_counter() - started
            )

        return AttemptOutcome.success(
            kind, label, requested_url, result.payload, time.perf_counter() - started
        )

    async def _fetch(self, requested_url: str) -> FetchResult:
        """GET a URL and return its body.

        Raises:
            FetchFailedError: On a transport error or non-success status.
        """
        client = await self._get_client()
        try:
            response = await client.get(requested_url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchFailedError(
                "Request failed",
                context={"url": requested_url, "error": f"{type(e).__name__}: {e}"},
            ) from e

        if not response.is_success:
            raise FetchFailedError(
                f"HTTP error! status: {response.status_code}",
                context={"url": requested_url, "status_code": response.status_code},
            )

        return FetchResult(
            requested_url=requested_url,
            status_code=response.status_code,
            payload=response.content,
            min_bytes=self.min_bytes,
        )

    def _validate(self, result: FetchResult) -> None:
        """Reject payloads too small to be a real document.

        Raises:
            ValidationFailedError: If the payload is below the minimum size.
        """
        if not result.is_valid:
            raise ValidationFailedError(
                "Downloaded file is too small, likely an error page",
                context={
                    "url": result.requested_url,
                    "size": result.size_bytes,
                    "min_bytes": result.min_bytes,
                },
            )

    async def _store(self, url: str, payload: bytes, source: str) -> None:
        """Cache a payload under its canonical URL. Failures are logged only."""
        if self.cache is None:
            return
        try:
            await self.cache.put(url, payload, source=source)
        except CacheUnavailableError as e:
            logger.warning("Cache write failed", url=url, error=str(e))


@asynccontextmanager
async def open_fetcher(
    settings: Settings,
    use_cache: bool = True,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[TextbookFetcher]:
    """Open the persistent cache and yield a configured fetcher.

    A cache that cannot be opened is logged and left closed; the fetcher then
    treats every lookup as a miss and every write as a no-op failure.
    """
    cache: DocumentCache | None = None
    if use_cache:
        cache = SQLiteDocumentCache(settings.CACHE_DIR, db_name=settings.cache_db_path.name)
        try:
            await cache.open()
        except CacheUnavailableError as e:
            logger.warning("Document cache unavailable, continuing without it", error=str(e))

    fetcher = TextbookFetcher.from_settings(settings, cache=cache, client=client)
    try:
        yield fetcher
    finally:
        await fetcher.close()
        if cache is not None:
            await cache.close()
