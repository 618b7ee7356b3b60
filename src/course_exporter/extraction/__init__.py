"""
Extraction Module - Turn a course page into export records.
===========================================================

- normalizers: pure text-to-value conversions
- parser: course record builder and the section/lesson walker
- assembler: payload assembly, task-list projection, request handler

Pipeline flow:
    PageDocument → CourseParser → assemble_export_payload → ExtractionResult
"""

from course_exporter.extraction.normalizers import (
    clean_text,
    get_course_slug,
    normalize_published_date,
    parse_duration_text,
    time_range_to_duration_minutes,
    time_to_seconds,
    to_absolute_url,
)
from course_exporter.extraction.parser import CourseParser, PageDocument, PageSelectors
from course_exporter.extraction.assembler import (
    assemble_export_payload,
    build_task_list,
    handle_extract_message,
)

__all__ = [
    # Normalizers
    "clean_text",
    "get_course_slug",
    "normalize_published_date",
    "parse_duration_text",
    "time_range_to_duration_minutes",
    "time_to_seconds",
    "to_absolute_url",
    # Parser
    "CourseParser",
    "PageDocument",
    "PageSelectors",
    # Assembler
    "assemble_export_payload",
    "build_task_list",
    "handle_extract_message",
]
