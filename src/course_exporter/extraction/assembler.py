"""
Assembler Module - Build the export payload and answer extraction requests.
===========================================================================

- assemble_export_payload: slug + course record + lessons + derived counts
- build_task_list: projection into the task-list artifact
- handle_extract_message: the listener a document context registers; turns
  a request into ``{ok: true, data}`` or ``{ok: false, error}``
"""

from typing import Any, Optional

from course_exporter.extraction.normalizers import get_course_slug
from course_exporter.extraction.parser import CourseParser, PageDocument
from course_exporter.shared.errors import PreconditionError
from course_exporter.shared.logging import get_logger
from course_exporter.shared.schemas import (
    EXTRACT_REQUEST_TYPE,
    ExportPayload,
    ExtractionResult,
    ExtractResponse,
    LessonRecord,
    TaskListPayload,
)

logger = get_logger(__name__)

NOT_A_COURSE_PAGE = "URL is not in /courses/<course-slug>/ format."
COURSE_DATA_NOT_FOUND = "Course information could not be found on the page."
UNKNOWN_ERROR = "Unknown error."


def build_course_url(origin: str, slug: str) -> str:
    """Canonical course URL: ``<origin>/courses/<slug>/``."""
    if not slug:
        return ""
    return f"{origin}/courses/{slug}/"


def count_sections(lessons: list[LessonRecord]) -> int:
    """
    Count distinct section IDs referenced by lessons.

    Headers without lessons are not counted even though they consumed an ID.
    """
    return len({lesson.section_id for lesson in lessons})


def assemble_export_payload(
    document: PageDocument,
    parser: Optional[CourseParser] = None,
) -> ExtractionResult:
    """
    Extract the full export payload from a course page.

    Args:
        document: Loaded course page
        parser: Parser to use (default selectors if None)

    Returns:
        ExtractionResult with the slug and ``{courseData, lessons}``

    Raises:
        PreconditionError: If the path is not ``/courses/<slug>/...`` (checked
            before any markup is read) or the course title is missing
    """
    slug = get_course_slug(document.path)
    if not slug:
        raise PreconditionError(NOT_A_COURSE_PAGE)

    parser = parser or CourseParser()

    course = parser.build_course_record(document)
    if not course.title:
        raise PreconditionError(COURSE_DATA_NOT_FOUND)

    lessons = parser.walk_lessons(document)

    course = course.model_copy(
        update={
            "section_count": count_sections(lessons),
            "lesson_count": len(lessons),
            "canonical_url": build_course_url(document.origin, slug),
        }
    )

    logger.info(
        f"Extracted '{course.title}': {course.section_count} sections, "
        f"{course.lesson_count} lessons"
    )
    return ExtractionResult(
        slug=slug,
        payload=ExportPayload(course_data=course, lessons=lessons),
    )


def build_task_list(payload: Optional[ExportPayload]) -> TaskListPayload:
    """Derive the task-list artifact from an export payload."""
    return TaskListPayload.from_payload(payload)


def handle_extract_message(
    message: Any,
    document: PageDocument,
    parser: Optional[CourseParser] = None,
) -> Optional[dict[str, Any]]:
    """
    Answer an extraction request from inside a document context.

    Args:
        message: Incoming message, expected ``{"type": "extract-course-data"}``
        document: The page the listener is attached to
        parser: Optional parser override

    Returns:
        Response message dict, or None for messages this listener ignores
    """
    if not isinstance(message, dict) or message.get("type") != EXTRACT_REQUEST_TYPE:
        return None

    try:
        result = assemble_export_payload(document, parser)
    except Exception as e:
        # Any extraction fault is reported to the caller, not raised here
        logger.warning(f"Extraction failed for {document.url}: {e}")
        return ExtractResponse.failure(str(e) or UNKNOWN_ERROR).to_message()

    return ExtractResponse.success(result).to_message()
