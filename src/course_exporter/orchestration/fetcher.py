"""
Fetcher Module - Load course pages over HTTP with retries.
==========================================================

Loads the HTML a BrowserTab renders:
- Shared requests session with a fixed user agent
- Automatic retries with exponential backoff (tenacity)
- Failed loads come back as a FetchedPage with status 0, not an exception

No caching: every load and reload fetches the page again.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from course_exporter.shared.config import get_settings
from course_exporter.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FetchedPage:
    """Represents a fetched web page."""

    url: str
    html: str
    status_code: int
    fetched_at: datetime

    @property
    def is_success(self) -> bool:
        """Check if the page was successfully fetched."""
        return 200 <= self.status_code < 300


class PageFetcher:
    """
    HTTP page loader with retries.

    Example:
        >>> with PageFetcher() as fetcher:
        ...     page = fetcher.fetch("https://frontendmasters.com/courses/x/")
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per fetch
            user_agent: User agent string
            session: Pre-built session (mostly for tests)
        """
        fetch_config = get_settings().fetch

        self.timeout = timeout if timeout is not None else fetch_config.timeout
        self.max_retries = max_retries if max_retries is not None else fetch_config.max_retries
        self.user_agent = user_agent or fetch_config.user_agent
        self.retry_min_wait = fetch_config.retry_min_wait
        self.retry_max_wait = fetch_config.retry_max_wait

        self._session = session

        logger.debug(f"PageFetcher initialized: timeout={self.timeout}s, retries={self.max_retries}")

    @property
    def session(self) -> requests.Session:
        """Get or create the requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(
                {
                    "User-Agent": self.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.5",
                }
            )
        return self._session

    def fetch(self, url: str) -> FetchedPage:
        """
        Fetch a URL, retrying transient request errors.

        Args:
            url: Page URL

        Returns:
            FetchedPage; ``status_code`` is 0 when every attempt failed
        """

        @retry(
            retry=retry_if_exception_type(requests.RequestException),
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(min=self.retry_min_wait, max=self.retry_max_wait),
            before_sleep=lambda retry_state: logger.warning(
                f"Retry {retry_state.attempt_number}/{self.max_retries} for {url}"
            ),
            reraise=True,
        )
        def _request_with_retry() -> requests.Response:
            return self.session.get(url, timeout=self.timeout)

        logger.info(f"Loading: {url}")

        try:
            response = _request_with_retry()
        except requests.RequestException as e:
            logger.error(f"Failed to load {url}: {e}")
            return FetchedPage(
                url=url,
                html="",
                status_code=0,
                fetched_at=datetime.now(timezone.utc),
            )

        return FetchedPage(
            url=response.url or url,
            html=response.text,
            status_code=response.status_code,
            fetched_at=datetime.now(timezone.utc),
        )

    def close(self) -> None:
        """Close the session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()
