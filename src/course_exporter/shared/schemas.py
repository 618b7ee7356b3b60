"""
Schemas Module - Pydantic data models for the exporter.
=======================================================

Defines the data contracts shared by extraction, messaging and export:
- Course, section and lesson records
- The exported payload and its task-list projection
- Request/response messages exchanged with a document context

Records are immutable once built. Serialized JSON uses camelCase field
names (``totalDurationMinutes``, ``sectionId``, ...).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EXTRACT_REQUEST_TYPE = "extract-course-data"


class ExportModel(BaseModel):
    """Base model: frozen, camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-ready dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


# ─────────────────────────────────────────────────────────────────────────────
# Course Data Models
# ─────────────────────────────────────────────────────────────────────────────


class CourseRecord(ExportModel):
    """
    Course-level metadata read from the page header.

    ``title`` is the one required field; the assembler refuses to build a
    payload without it. Counts and the canonical URL are derived after the
    lesson walk.
    """

    title: str = Field(..., description="Course title")
    description: str = Field(default="", description="Course description paragraph")
    tutor: str = Field(default="", description="Instructor name")
    total_duration_minutes: str = Field(
        default="", description="Total duration in minutes, string-encoded"
    )
    published_date: str = Field(default="", description="Publish date as YYYY-MM-DD")
    section_count: int = Field(default=0, ge=0, description="Distinct sections with lessons")
    lesson_count: int = Field(default=0, ge=0, description="Number of lessons")
    canonical_url: str = Field(default="", description="Absolute course URL")


class SectionRecord(ExportModel):
    """A section header met while walking the lesson markup."""

    id: int
    title: str = ""
    duration_minutes: str = ""


class LessonRecord(ExportModel):
    """
    One lesson row.

    Section fields are a snapshot of the section that was current when the
    lesson was read.
    """

    id: int
    title: str = ""
    description: str = ""
    duration_minutes: str = ""
    time_range: str = ""
    lesson_url: str = ""
    section_id: int
    section_title: str = ""
    section_duration: str = ""


class ExportPayload(ExportModel):
    """Root of the first export artifact (``<slug>.json``)."""

    course_data: CourseRecord
    lessons: list[LessonRecord] = Field(default_factory=list)


class ExtractionResult(ExportModel):
    """What a document context returns for a successful extraction."""

    slug: str
    payload: ExportPayload


# ─────────────────────────────────────────────────────────────────────────────
# Task List Projection
# ─────────────────────────────────────────────────────────────────────────────


class Task(ExportModel):
    """A single task entry of the task-list artifact."""

    content: str
    description: str


class TaskListPayload(ExportModel):
    """Second export artifact (``<slug>-v2.json``), derived from the payload."""

    tasks: list[Task] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[ExportPayload]) -> "TaskListPayload":
        """
        Project an export payload into one task per lesson.

        Args:
            payload: Export payload (None yields an empty task list)

        Returns:
            TaskListPayload with ``content = "{id}. {title} []"``
        """
        lessons = payload.lessons if payload is not None else []
        return cls(tasks=[build_task(lesson) for lesson in lessons])


def build_task(lesson: LessonRecord) -> Task:
    """Render one lesson as a task; missing values become empty strings."""
    title = lesson.title or ""
    duration = lesson.duration_minutes or ""
    url = lesson.lesson_url or ""

    return Task(
        content=f"{lesson.id}. {title} []",
        description=f"- Duration: {duration} min\n- Url: {url}",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Messages
# ─────────────────────────────────────────────────────────────────────────────


class ExtractRequest(ExportModel):
    """Request sent from the caller to a document context."""

    type: str = EXTRACT_REQUEST_TYPE


class ExtractResponse(ExportModel):
    """
    Response from a document context.

    Either ``{ok: true, data}`` or ``{ok: false, error}``.
    """

    ok: bool
    data: Optional[ExtractionResult] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: ExtractionResult) -> "ExtractResponse":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ExtractResponse":
        return cls(ok=False, error=error)

    def to_message(self) -> dict[str, Any]:
        """Dump as a wire message, omitting the unused branch."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
