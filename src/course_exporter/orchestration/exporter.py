"""
Exporter Module - One export invocation from target page to files.
==================================================================

Check the target → choose where to save → request course data →
derive the task list → write ``<slug>.json`` and ``<slug>-v2.json``.

Only one export runs at a time per exporter; a second call while one is
in flight is rejected.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from course_exporter.extraction.assembler import build_task_list
from course_exporter.orchestration.context import DocumentContext
from course_exporter.orchestration.orchestrator import RequestOrchestrator, validate_course_location
from course_exporter.orchestration.persistence import JsonWriter, save_artifacts
from course_exporter.shared.config import get_settings
from course_exporter.shared.errors import ExportInProgressError
from course_exporter.shared.logging import get_logger
from course_exporter.shared.schemas import ExtractionResult

logger = get_logger(__name__)

StatusCallback = Callable[[str], None]


def build_artifacts(result: ExtractionResult, task_list_suffix: str = "-v2") -> list[tuple[str, Any]]:
    """Pair each export artifact with its filename: the payload, then the task list."""
    return [
        (f"{result.slug}.json", result.payload),
        (f"{result.slug}{task_list_suffix}.json", build_task_list(result.payload)),
    ]


@dataclass
class ExportSummary:
    """Outcome of a finished export."""

    slug: str
    mode: str
    paths: list[Path] = field(default_factory=list)
    section_count: int = 0
    lesson_count: int = 0

    @property
    def filenames(self) -> list[str]:
        return [path.name for path in self.paths]

    @property
    def message(self) -> str:
        verb = "Downloaded" if self.mode == "download" else "Saved"
        return f"{verb}: {', '.join(self.filenames)}"


class CourseExporter:
    """
    Runs the export flow against a document context.

    Example:
        >>> exporter = CourseExporter(writer=DirectoryWriter(Path("exports")))
        >>> summary = await exporter.export(tab)
        >>> summary.message
        'Saved: web-auth.json, web-auth-v2.json'
    """

    def __init__(
        self,
        writer: Optional[JsonWriter] = None,
        choose_writer: Optional[Callable[[], JsonWriter]] = None,
        orchestrator: Optional[RequestOrchestrator] = None,
        status_callback: Optional[StatusCallback] = None,
        task_list_suffix: Optional[str] = None,
    ):
        """
        Initialize the exporter.

        Args:
            writer: Fixed destination writer
            choose_writer: Asks the user for a destination on every export;
                may raise UserCancelledError. Takes precedence over ``writer``.
            orchestrator: Request orchestrator (default settings if None)
            status_callback: Receives human-readable progress messages
            task_list_suffix: Suffix of the task-list filename (default "-v2")
        """
        if writer is None and choose_writer is None:
            raise ValueError("CourseExporter needs a writer or a way to choose one")

        settings = get_settings()

        self.writer = writer
        self.choose_writer = choose_writer
        self.orchestrator = orchestrator or RequestOrchestrator()
        self.status_callback = status_callback
        self.task_list_suffix = (
            task_list_suffix if task_list_suffix is not None else settings.export.task_list_suffix
        )
        self._busy = False

    @property
    def busy(self) -> bool:
        """True while an export is in flight."""
        return self._busy

    def _status(self, message: str) -> None:
        logger.debug(message)
        if self.status_callback:
            self.status_callback(message)

    def _resolve_writer(self) -> JsonWriter:
        if self.choose_writer is not None:
            self._status("Select project folder...")
            return self.choose_writer()
        return self.writer

    async def export(self, context: Optional[DocumentContext]) -> ExportSummary:
        """
        Export the course open in ``context``.

        Raises:
            ExportInProgressError: If another export is running
            PreconditionError, TransportError, ReloadTimeoutError: From the request
            UserCancelledError: If destination selection was abandoned
            PersistenceError: If an artifact could not be written
        """
        if self._busy:
            raise ExportInProgressError("An export is already running.")

        self._busy = True
        try:
            self._status("Checking active page...")
            validate_course_location(
                getattr(context, "url", None), self.orchestrator.course_url_pattern
            )

            writer = self._resolve_writer()

            self._status("Reading course data...")
            result = await self.orchestrator.request_course_data(context)
            saved = save_artifacts(writer, build_artifacts(result, self.task_list_suffix))

            course = result.payload.course_data
            summary = ExportSummary(
                slug=result.slug,
                mode=saved.mode,
                paths=saved.paths,
                section_count=course.section_count,
                lesson_count=course.lesson_count,
            )
            self._status(summary.message)
            return summary
        finally:
            self._busy = False
