"""
Orchestration Module - Reach a page, get its data, save it.
===========================================================

- fetcher: HTTP page loads with retries
- context: document contexts (DocumentContext, BrowserTab)
- orchestrator: request state machine with one recovery cycle
- persistence: directory and download writers
- exporter: the full export flow

Flow:
    BrowserTab → RequestOrchestrator → ExtractionResult → JsonWriter
"""

from course_exporter.orchestration.fetcher import FetchedPage, PageFetcher
from course_exporter.orchestration.context import BrowserTab, DocumentContext, TabStatus
from course_exporter.orchestration.orchestrator import (
    RequestEvent,
    RequestOrchestrator,
    RequestState,
    transition,
    validate_course_location,
)
from course_exporter.orchestration.persistence import (
    DirectoryWriter,
    DownloadWriter,
    JsonWriter,
    choose_directory,
    save_artifacts,
)
from course_exporter.orchestration.exporter import CourseExporter, ExportSummary

__all__ = [
    # Fetcher
    "FetchedPage",
    "PageFetcher",
    # Context
    "BrowserTab",
    "DocumentContext",
    "TabStatus",
    # Orchestrator
    "RequestEvent",
    "RequestOrchestrator",
    "RequestState",
    "transition",
    "validate_course_location",
    # Persistence
    "DirectoryWriter",
    "DownloadWriter",
    "JsonWriter",
    "choose_directory",
    "save_artifacts",
    # Exporter
    "CourseExporter",
    "ExportSummary",
]
