"""
Pytest Configuration and Fixtures.
===================================

Shared fixtures for all test modules:
- Sample course page HTML
- Fake document contexts and a stub page fetcher
- Temporary directories
"""

import asyncio
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Optional

import pytest


COURSE_URL = "https://frontendmasters.com/courses/web-auth/"


# ─────────────────────────────────────────────────────────────────────────────
# Path Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ─────────────────────────────────────────────────────────────────────────────
# Sample Page Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def course_url() -> str:
    """URL of the sample course page."""
    return COURSE_URL


@pytest.fixture
def sample_course_html() -> str:
    """
    A course page with a lesson list before the first header, an empty
    section, and lessons missing links or with a reversed time range.
    """
    return """
    <!DOCTYPE html>
    <html>
    <head><title>Web Authentication APIs</title></head>
    <body>
      <div class="Course-Header-Details">
        <h1>  Web   Authentication&#8203; APIs </h1>
      </div>
      <div class="Course-Header-Meta">4 hours, 12 minutes CC</div>
      <div class="FM-Round-Thumbnail-Item">
        <div class="text"><div class="main"><a href="/teachers/firtman/">Maximiliano Firtman</a></div></div>
      </div>
      <div class="group">
        <span class="duration">4 hours, 12 minutes</span>
        <span class="duration">Published: March 3, 2022</span>
      </div>
      <div class="content">
        <h3>Course Description</h3>
        <p>Learn   passkeys
           and WebAuthn.</p>
      </div>

      <section class="Course-Lessons">
        <ul class="Course-Lesson-List">
          <li class="Course-Lesson-List-Item">
            <a class="thumbnail" href="/courses/web-auth/introduction/"><img src="x.jpg"></a>
            <div class="title"><h3><a href="/courses/web-auth/introduction/">Introduction</a></h3></div>
            <a class="timestamp" href="/courses/web-auth/introduction/"><span>00:00:00 - 00:05:30</span></a>
            <div class="description">Max introduces the course.</div>
          </li>
        </ul>

        <div class="Course-Lesson-Group">
          <h3>Passwords</h3>
          <span class="duration">45 mins</span>
        </div>
        <ul class="Course-Lesson-List">
          <li class="Course-Lesson-List-Item">
            <div class="title"><h3><a href="/courses/web-auth/password-storage/">Password Storage</a></h3></div>
            <a class="timestamp" href="/courses/web-auth/password-storage/"><span>00:05:30-00:20:00</span></a>
            <div class="description">Where passwords live.</div>
          </li>
          <li class="Course-Lesson-List-Item">
            <div class="title"><h3><a href="/courses/web-auth/hashing/">Hashing</a></h3></div>
            <a class="timestamp" href="/courses/web-auth/hashing/"><span>20:00-45:10</span></a>
          </li>
        </ul>

        <div class="Course-Lesson-Group">
          <h3>Empty Section</h3>
        </div>

        <div class="Course-Lesson-Group">
          <h3>Passkeys</h3>
          <span class="duration">1 hour 5 minutes</span>
        </div>
        <ul class="Course-Lesson-List">
          <li class="Course-Lesson-List-Item">
            <div class="title"><h3><a href="https://frontendmasters.com/courses/web-auth/registering/">Registering Passkeys</a></h3></div>
            <a class="timestamp" href="/courses/web-auth/registering/"><span>01:05:00-01:00:00</span></a>
          </li>
          <li class="Course-Lesson-List-Item">
            <a class="thumbnail" href="/courses/web-auth/wrapping-up/"><img src="y.jpg"></a>
          </li>
        </ul>
      </section>
    </body>
    </html>
    """


@pytest.fixture
def course_document(sample_course_html: str, course_url: str):
    """PageDocument for the sample course page."""
    from course_exporter.extraction.parser import PageDocument

    return PageDocument.from_html(sample_course_html, course_url)


@pytest.fixture
def extraction_result(course_document):
    """Assembled extraction result for the sample page."""
    from course_exporter.extraction.assembler import assemble_export_payload

    return assemble_export_payload(course_document)


# ─────────────────────────────────────────────────────────────────────────────
# Fake Collaborators
# ─────────────────────────────────────────────────────────────────────────────


class StubFetcher:
    """Page fetcher returning canned HTML without network access."""

    def __init__(self, html: str, status_code: int = 200, delay: float = 0.0):
        self.html = html
        self.status_code = status_code
        self.delay = delay
        self.calls = 0

    def fetch(self, url: str):
        import time

        from course_exporter.orchestration.fetcher import FetchedPage

        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return FetchedPage(
            url=url,
            html=self.html,
            status_code=self.status_code,
            fetched_at=datetime.now(timezone.utc),
        )

    def close(self) -> None:
        pass


class FakeContext:
    """
    Scripted document context.

    ``responses`` are consumed one per send: a dict is returned, an
    exception instance is raised.
    """

    def __init__(
        self,
        responses: list[Any],
        url: str = COURSE_URL,
        can_inject: bool = True,
        reload_completes: bool = True,
        inject_error: Optional[Exception] = None,
    ):
        self.url = url
        self.responses = list(responses)
        self.can_inject = can_inject
        self.reload_completes = reload_completes
        self.inject_error = inject_error
        self.calls: list[str] = []
        self.messages: list[dict] = []

    @property
    def can_inject_scripts(self) -> bool:
        return self.can_inject

    async def send_message(self, message: dict):
        self.calls.append("send")
        self.messages.append(message)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def inject_extractor(self) -> None:
        self.calls.append("inject")
        if self.inject_error is not None:
            raise self.inject_error

    async def reload(self) -> None:
        self.calls.append("reload")

    async def wait_until_complete(self) -> None:
        self.calls.append("wait")
        if not self.reload_completes:
            await asyncio.Event().wait()

    async def stop_loading(self) -> None:
        self.calls.append("stop")


@pytest.fixture
def stub_fetcher_factory():
    """Build StubFetcher instances."""
    return StubFetcher


@pytest.fixture
def fake_context_factory():
    """Build FakeContext instances."""
    return FakeContext


@pytest.fixture
def ok_response(extraction_result) -> dict:
    """Successful response message for the sample page."""
    from course_exporter.shared.schemas import ExtractResponse

    return ExtractResponse.success(extraction_result).to_message()
