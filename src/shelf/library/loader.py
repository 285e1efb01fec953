"""
Textbook loader.

Opens a subject's textbook through the acquisition pipeline. When the
textbook cannot be acquired at all, the loader substitutes the default
document and flags the result so the reader can tell the student.
"""

from __future__ import annotations

from shelf.acquisition.pipeline import TextbookFetcher
from shelf.config import SAMPLE_PDF_URL
from shelf.exceptions import AcquisitionExhaustedError, TextbookUnavailableError
from shelf.logging import get_logger, log_context
from shelf.types import LoadedTextbook, Subject

logger = get_logger(__name__)

SUBSTITUTE_NOTICE = (
    "**Network Notice:** The official textbook server for {title} is currently "
    "unreachable.\n\nI have loaded the **Offline Demo Textbook** so we can "
    "continue our session."
)


class TextbookLoader:
    """Loads textbooks with a default-document fallback tier."""

    def __init__(
        self,
        fetcher: TextbookFetcher,
        default_url: str = SAMPLE_PDF_URL,
    ) -> None:
        """Initialize the loader.

        Args:
            fetcher: Acquisition pipeline used for both tiers.
            default_url: Known-good document served when the requested one fails.
        """
        self.fetcher = fetcher
        self.default_url = default_url

    async def open_subject(self, subject: Subject) -> LoadedTextbook:
        """Load the textbook for a catalog subject.

        Raises:
            TextbookUnavailableError: If neither the textbook nor the default loads.
        """
        with log_context(subject=subject.id):
            return await self.open_url(
                subject.pdf_url, title=subject.name, start_page=subject.start_page
            )

    async def open_url(
        self,
        url: str,
        title: str,
        start_page: int | None = None,
    ) -> LoadedTextbook:
        """Load a document by URL, substituting the default document on failure.

        Args:
            url: Canonical URL of the requested textbook.
            title: Display title, also used for the filename.
            start_page: Page to open on.

        Returns:
            LoadedTextbook; is_substitute is True when the default was served.

        Raises:
            TextbookUnavailableError: If neither the textbook nor the default loads.
        """
        try:
            result = await self.fetcher.acquire(url)
        except AcquisitionExhaustedError as requested_error:
            if url == self.default_url:
                logger.error("Default document could not be loaded", url=url)
                raise TextbookUnavailableError(requested_error) from requested_error

            logger.warning(
                "Primary textbook load failed, switching to default document",
                url=url,
                default_url=self.default_url,
            )
            return await self._open_default(url, title, requested_error)

        return LoadedTextbook(
            title=title,
            filename=f"{title}.pdf",
            payload=result.payload,
            requested_url=url,
            served_url=url,
            start_page=start_page,
            acquisition=result,
        )

    async def _open_default(
        self,
        requested_url: str,
        title: str,
        requested_error: AcquisitionExhaustedError,
    ) -> LoadedTextbook:
        try:
            result = await self.fetcher.acquire(self.default_url)
        except AcquisitionExhaustedError as fallback_error:
            logger.error(
                "Even the default document failed",
                url=requested_url,
                default_url=self.default_url,
            )
            raise TextbookUnavailableError(requested_error, fallback_error) from fallback_error

        return LoadedTextbook(
            title=title,
            filename=f"{title} (Demo).pdf",
            payload=result.payload,
            requested_url=requested_url,
            served_url=self.default_url,
            is_substitute=True,
            notice=SUBSTITUTE_NOTICE.format(title=title),
            acquisition=result,
        )
