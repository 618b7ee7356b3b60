"""
Shared Module - Common utilities, configuration, schemas, and logging.
======================================================================

This module provides foundational components used across all other modules:

- config: Configuration loading and management
- logging: Structured logging setup
- errors: Export error taxonomy
- schemas: Pydantic data models
- utils: JSON and file helpers
"""

from course_exporter.shared.config import get_settings, reload_settings, Settings
from course_exporter.shared.logging import get_console, get_logger, setup_logging
from course_exporter.shared.errors import (
    ExportError,
    ExportInProgressError,
    NoReceiverError,
    PersistenceError,
    PreconditionError,
    ReloadTimeoutError,
    TransportError,
    UserCancelledError,
)
from course_exporter.shared.schemas import (
    CourseRecord,
    SectionRecord,
    LessonRecord,
    ExportPayload,
    ExtractionResult,
    Task,
    TaskListPayload,
    ExtractRequest,
    ExtractResponse,
)
from course_exporter.shared.utils import (
    dumps_json,
    ensure_directory,
    load_json,
    save_json,
)

__all__ = [
    # Config
    "get_settings",
    "reload_settings",
    "Settings",
    # Logging
    "get_console",
    "get_logger",
    "setup_logging",
    # Errors
    "ExportError",
    "ExportInProgressError",
    "NoReceiverError",
    "PersistenceError",
    "PreconditionError",
    "ReloadTimeoutError",
    "TransportError",
    "UserCancelledError",
    # Schemas
    "CourseRecord",
    "SectionRecord",
    "LessonRecord",
    "ExportPayload",
    "ExtractionResult",
    "Task",
    "TaskListPayload",
    "ExtractRequest",
    "ExtractResponse",
    # Utils
    "dumps_json",
    "ensure_directory",
    "load_json",
    "save_json",
]
