"""
Context Module - Document contexts the exporter talks to.
=========================================================

A document context is a loaded page that answers extraction requests
through a registered listener, like a browser tab with a content script.

- DocumentContext: the interface the request orchestrator relies on
- BrowserTab: HTTP-backed tab that loads pages with PageFetcher

A context without a listener rejects messages with NoReceiverError. The
first navigation attaches the listener only with ``auto_attach_listener``
(a page opened before the extractor was installed). Injection attaches it
at any time, and every reload brings it back once the new load completes.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional

from course_exporter.extraction.assembler import handle_extract_message
from course_exporter.extraction.parser import CourseParser, PageDocument
from course_exporter.orchestration.fetcher import PageFetcher
from course_exporter.shared.errors import NoReceiverError, TransportError
from course_exporter.shared.logging import get_logger

logger = get_logger(__name__)

MessageListener = Callable[[Any], Optional[dict[str, Any]]]


class TabStatus(str, Enum):
    """Load status of a tab."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    COMPLETE = "complete"


# ─────────────────────────────────────────────────────────────────────────────
# Interface
# ─────────────────────────────────────────────────────────────────────────────


class DocumentContext(ABC):
    """A target page the orchestrator can message, inject into, or reload."""

    url: str

    @property
    def can_inject_scripts(self) -> bool:
        """Whether :meth:`inject_extractor` is available."""
        return False

    @abstractmethod
    async def send_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Deliver a message to the context's listener.

        Returns:
            The listener's response (None if it ignored the message)

        Raises:
            NoReceiverError: If no listener is registered
        """

    async def inject_extractor(self) -> None:
        """Register the extraction listener in the context."""
        raise TransportError("Script injection is not available for this context.")

    @abstractmethod
    async def reload(self) -> None:
        """Start reloading the context."""

    @abstractmethod
    async def wait_until_complete(self) -> None:
        """Wait until the context has fully loaded. Unbounded; callers time it out."""

    async def stop_loading(self) -> None:
        """Abandon a load in progress. Contexts that cannot do this ignore it."""


# ─────────────────────────────────────────────────────────────────────────────
# Browser Tab
# ─────────────────────────────────────────────────────────────────────────────


class BrowserTab(DocumentContext):
    """
    A tab backed by HTTP page loads.

    Example:
        >>> tab = BrowserTab("https://frontendmasters.com/courses/web-auth/")
        >>> await tab.open()
        >>> await tab.send_message({"type": "extract-course-data"})
        NoReceiverError: Could not establish connection. Receiving end does not exist.
    """

    def __init__(
        self,
        url: str,
        fetcher: Optional[PageFetcher] = None,
        parser: Optional[CourseParser] = None,
        scripting_enabled: bool = True,
        auto_attach_listener: bool = False,
    ):
        """
        Initialize the tab.

        Args:
            url: Page location
            fetcher: Page loader (a default PageFetcher if None)
            parser: Parser used by the extraction listener
            scripting_enabled: Whether the extractor can be injected
            auto_attach_listener: Register the listener when the first
                navigation completes; reloads always register it
        """
        self.url = url
        self.fetcher = fetcher or PageFetcher()
        self.parser = parser or CourseParser()
        self.scripting_enabled = scripting_enabled
        self.auto_attach_listener = auto_attach_listener

        self.status = TabStatus.UNLOADED
        self.document: Optional[PageDocument] = None
        self._listener: Optional[MessageListener] = None
        self._complete = asyncio.Event()
        self._load_task: Optional[asyncio.Task] = None

    @property
    def can_inject_scripts(self) -> bool:
        return self.scripting_enabled

    @property
    def has_listener(self) -> bool:
        return self._listener is not None

    def _begin_loading(self) -> None:
        self.status = TabStatus.LOADING
        self._complete.clear()
        self._listener = None

    def _attach_listener(self) -> None:
        self._listener = partial(handle_extract_message, document=self.document, parser=self.parser)
        logger.debug(f"Extraction listener attached: {self.url}")

    async def _load(self, attach: bool) -> None:
        """
        Fetch and parse the page, then mark the tab complete.

        Args:
            attach: Register the extraction listener before signalling completion
        """
        page = await asyncio.to_thread(self.fetcher.fetch, self.url)

        if page.is_success:
            self.url = page.url
            html = page.html
        else:
            logger.warning(f"Page load failed (status {page.status_code}): {self.url}")
            html = ""

        self.document = PageDocument.from_html(html, self.url)
        if attach:
            self._attach_listener()

        self.status = TabStatus.COMPLETE
        self._complete.set()

    def _on_load_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Reload of {self.url} failed: {error!r}")

    async def open(self) -> "BrowserTab":
        """Navigate to the tab's URL and wait for the load to finish."""
        self._begin_loading()
        await self._load(attach=self.auto_attach_listener)
        return self

    async def send_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        if self._listener is None:
            raise NoReceiverError()
        return self._listener(message)

    async def inject_extractor(self) -> None:
        """Attach the extraction listener; a second injection is a no-op."""
        if not self.scripting_enabled:
            await super().inject_extractor()
        if self.document is None or self.status is not TabStatus.COMPLETE:
            raise TransportError("Cannot inject into a tab that has not finished loading.")
        if self._listener is not None:
            logger.debug("Extractor already present, skipping injection")
            return
        self._attach_listener()

    async def reload(self) -> None:
        """
        Drop the listener and start loading the page again in the background.

        The fresh load re-registers the listener, like a content script that
        runs on every page load.
        """
        await self.stop_loading()
        self._begin_loading()
        self._load_task = asyncio.create_task(self._load(attach=True))
        self._load_task.add_done_callback(self._on_load_done)
        logger.info(f"Reloading: {self.url}")

    async def wait_until_complete(self) -> None:
        await self._complete.wait()

    async def stop_loading(self) -> None:
        """Cancel a reload that is still in flight."""
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
            logger.debug(f"Pending load cancelled: {self.url}")

    async def close(self) -> None:
        """Cancel a pending load and release the fetcher."""
        await self.stop_loading()
        self.fetcher.close()
