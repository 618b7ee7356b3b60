"""
Parser Module - Read course and lesson records from a course page.
==================================================================

Parses course-detail HTML into typed records using BeautifulSoup with
configurable CSS selectors.

- PageDocument: a loaded page (soup + location)
- CourseParser.build_course_record: header metadata
- CourseParser.walk_lessons: section/lesson walk in document order

Every read is defensive: a selector miss yields an empty string for that
field, never an exception.
"""

from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Optional, Union
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from course_exporter.extraction.normalizers import (
    clean_text,
    normalize_published_date,
    parse_duration_text,
    time_range_to_duration_minutes,
    to_absolute_url,
)
from course_exporter.shared.logging import get_logger
from course_exporter.shared.schemas import CourseRecord, LessonRecord, SectionRecord

logger = get_logger(__name__)

FIRST_SECTION_ID = 1001
FIRST_LESSON_ID = 1


# ─────────────────────────────────────────────────────────────────────────────
# Selector Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class PageSelectors:
    """CSS selectors for the course-detail page markup."""

    # Course header
    course_title: str = ".Course-Header-Details h1"
    tutor: str = ".FM-Round-Thumbnail-Item .text .main a"
    total_duration: str = ".Course-Header-Meta"

    # Description
    description_heading: str = "h3"
    content_wrapper: str = ".content"
    paragraph: str = "p"

    # Published date candidates ("Published: March 3, 2022")
    published_candidates: str = ".group .duration"

    # Lesson markup
    section_header: str = ".Course-Lesson-Group"
    lesson_list: str = "ul.Course-Lesson-List"
    lesson_item: str = "li.Course-Lesson-List-Item"
    section_title: str = "h3"
    section_duration: str = ".duration"
    lesson_title: str = ".title a"
    lesson_description: str = ".description"
    timestamp_link: str = "a.timestamp"
    thumbnail_link: str = "a.thumbnail"

    @property
    def lesson_sequence(self) -> str:
        """Selector matching headers and lists together, in document order."""
        return f"{self.section_header}, {self.lesson_list}"


# ─────────────────────────────────────────────────────────────────────────────
# Page Document
# ─────────────────────────────────────────────────────────────────────────────


class PageDocument:
    """
    A loaded page: parsed markup plus its location.

    Example:
        >>> doc = PageDocument.from_html(html, "https://frontendmasters.com/courses/x/")
        >>> doc.path
        '/courses/x/'
    """

    def __init__(self, soup: BeautifulSoup, url: str):
        self.soup = soup
        self.url = url

    @classmethod
    def from_html(cls, html: str, url: str) -> "PageDocument":
        """Parse HTML with lxml."""
        return cls(BeautifulSoup(html or "", "lxml"), url)

    @property
    def origin(self) -> str:
        """Scheme and host, e.g. ``https://frontendmasters.com``."""
        parts = urlsplit(self.url)
        if not parts.scheme or not parts.netloc:
            return ""
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    def __repr__(self) -> str:
        return f"PageDocument(url={self.url!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Walk State
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SectionHeader:
    """A section header node in the lesson sequence."""

    node: Tag


@dataclass(frozen=True)
class LessonList:
    """A lesson list node in the lesson sequence."""

    node: Tag


SequenceItem = Union[SectionHeader, LessonList]


@dataclass(frozen=True)
class WalkState:
    """Accumulator carried through the lesson walk."""

    current_section: Optional[SectionRecord] = None
    next_section_id: int = FIRST_SECTION_ID
    next_lesson_id: int = FIRST_LESSON_ID
    lessons: tuple[LessonRecord, ...] = field(default_factory=tuple)


# ─────────────────────────────────────────────────────────────────────────────
# Parser Class
# ─────────────────────────────────────────────────────────────────────────────


class CourseParser:
    """
    Builds course and lesson records from a PageDocument.

    Example:
        >>> parser = CourseParser()
        >>> course = parser.build_course_record(doc)
        >>> lessons = parser.walk_lessons(doc)
    """

    def __init__(self, selectors: Optional[PageSelectors] = None):
        """
        Initialize the parser.

        Args:
            selectors: Custom selector configuration (uses defaults if None)
        """
        self.selectors = selectors or PageSelectors()

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────

    def _select_text(self, root: Tag, selector: str) -> str:
        """Cleaned text of the first match, or "" when nothing matches."""
        element = root.select_one(selector)
        if element is None:
            return ""
        return clean_text(element.get_text())

    # ─────────────────────────────────────────────────────────────────────
    # Course Record
    # ─────────────────────────────────────────────────────────────────────

    def extract_description(self, document: PageDocument) -> str:
        """
        Read the course description.

        Looks for a heading reading "course description" and takes the first
        paragraph of its nearest content wrapper (or parent). Falls back to
        the first paragraph inside any content wrapper.
        """
        soup = document.soup
        sel = self.selectors

        heading = next(
            (
                item
                for item in soup.select(sel.description_heading)
                if clean_text(item.get_text()).lower() == "course description"
            ),
            None,
        )

        if heading is not None:
            wrapper = heading.css.closest(sel.content_wrapper) or heading.parent
            paragraph = wrapper.select_one(sel.paragraph) if wrapper is not None else None
            if paragraph is not None:
                return clean_text(paragraph.get_text())
            logger.debug("Description heading found without a paragraph")

        fallback = soup.select_one(f"{sel.content_wrapper} {sel.paragraph}")
        return clean_text(fallback.get_text() if fallback is not None else "")

    def extract_published_date(self, document: PageDocument) -> str:
        """
        Read the raw published-date label value.

        The label prefix up to the first colon is dropped:
        "Published: March 3, 2022" -> "March 3, 2022".
        """
        published_node = next(
            (
                node
                for node in document.soup.select(self.selectors.published_candidates)
                if "published" in clean_text(node.get_text()).lower()
            ),
            None,
        )
        if published_node is None:
            return ""

        text = clean_text(published_node.get_text())
        _, separator, remainder = text.partition(":")
        if separator:
            return clean_text(remainder)
        return text

    def build_course_record(self, document: PageDocument) -> CourseRecord:
        """
        Build course metadata from the page header.

        Missing regions give empty fields; an empty title is left for the
        assembler to reject.
        """
        soup = document.soup
        sel = self.selectors

        course = CourseRecord(
            title=self._select_text(soup, sel.course_title),
            description=self.extract_description(document),
            tutor=self._select_text(soup, sel.tutor),
            total_duration_minutes=parse_duration_text(
                self._select_text(soup, sel.total_duration)
            ),
            published_date=normalize_published_date(self.extract_published_date(document)),
        )

        logger.debug(f"Course record: title={course.title!r}, tutor={course.tutor!r}")
        return course

    # ─────────────────────────────────────────────────────────────────────
    # Lesson Records
    # ─────────────────────────────────────────────────────────────────────

    def extract_time_range(self, lesson_item: Tag) -> str:
        """Text of the first span inside the timestamp link."""
        timestamp_link = lesson_item.select_one(self.selectors.timestamp_link)
        if timestamp_link is None:
            return ""

        span = timestamp_link.find("span")
        if span is None:
            return ""
        return clean_text(span.get_text())

    def extract_lesson_url(self, lesson_item: Tag, origin: str) -> str:
        """First present of title link, timestamp link, thumbnail link."""
        sel = self.selectors
        for selector in (sel.lesson_title, sel.timestamp_link, sel.thumbnail_link):
            link = lesson_item.select_one(selector)
            if link is not None:
                return to_absolute_url(link.get("href"), origin)
        return ""

    def build_section_record(self, header: Tag, section_id: int) -> SectionRecord:
        """Build a section from its header node. Empty headers still get an ID."""
        return SectionRecord(
            id=section_id,
            title=self._select_text(header, self.selectors.section_title),
            duration_minutes=parse_duration_text(
                self._select_text(header, self.selectors.section_duration)
            ),
        )

    def build_lesson_record(
        self,
        lesson_item: Tag,
        lesson_id: int,
        section: SectionRecord,
        origin: str,
    ) -> LessonRecord:
        """Build one lesson, snapshotting the owning section's fields."""
        time_range = self.extract_time_range(lesson_item)

        return LessonRecord(
            id=lesson_id,
            title=self._select_text(lesson_item, self.selectors.lesson_title),
            description=self._select_text(lesson_item, self.selectors.lesson_description),
            duration_minutes=time_range_to_duration_minutes(time_range),
            time_range=time_range,
            lesson_url=self.extract_lesson_url(lesson_item, origin),
            section_id=section.id,
            section_title=section.title,
            section_duration=section.duration_minutes,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Document Walker
    # ─────────────────────────────────────────────────────────────────────

    def tag_sequence(self, document: PageDocument) -> list[SequenceItem]:
        """
        Collect section headers and lesson lists in document order.

        One mixed pass; nodes matching neither role are skipped.
        """
        sel = self.selectors
        items: list[SequenceItem] = []

        for node in document.soup.select(sel.lesson_sequence):
            if node.css.match(sel.section_header):
                items.append(SectionHeader(node))
            elif node.css.match(sel.lesson_list):
                items.append(LessonList(node))

        return items

    def _step(self, state: WalkState, item: SequenceItem, origin: str) -> WalkState:
        """Fold one sequence item into the walk state."""
        if isinstance(item, SectionHeader):
            section = self.build_section_record(item.node, state.next_section_id)
            logger.debug(f"Section {section.id}: {section.title!r}")
            return replace(
                state,
                current_section=section,
                next_section_id=state.next_section_id + 1,
            )

        if state.current_section is None:
            # lessons before any header share one synthetic section
            section = SectionRecord(id=state.next_section_id)
            state = replace(
                state,
                current_section=section,
                next_section_id=state.next_section_id + 1,
            )

        section = state.current_section
        next_lesson_id = state.next_lesson_id
        lessons = list(state.lessons)

        for lesson_item in item.node.select(self.selectors.lesson_item):
            lessons.append(
                self.build_lesson_record(lesson_item, next_lesson_id, section, origin)
            )
            next_lesson_id += 1

        return replace(state, next_lesson_id=next_lesson_id, lessons=tuple(lessons))

    def walk(self, items: list[SequenceItem], origin: str) -> list[LessonRecord]:
        """
        Walk a tagged sequence and return the ordered lesson list.

        Lesson IDs run 1, 2, 3, ... across the whole walk; section IDs run
        1001, 1002, ... in the order headers (or the synthetic section) appear.
        """
        final_state = reduce(
            lambda state, item: self._step(state, item, origin),
            items,
            WalkState(),
        )
        return list(final_state.lessons)

    def walk_lessons(self, document: PageDocument) -> list[LessonRecord]:
        """Walk the lesson markup of a document."""
        lessons = self.walk(self.tag_sequence(document), document.origin)
        logger.debug(f"Walked {len(lessons)} lessons")
        return lessons
