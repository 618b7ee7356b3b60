"""
Course Exporter - Course page extraction and JSON export
========================================================

Reads a course-detail page, turns its loosely structured markup into typed
course and lesson records, and writes two JSON artifacts:

- ``<slug>.json``: course metadata plus the ordered lesson list
- ``<slug>-v2.json``: a task list with one task per lesson

Extraction runs inside a document context (a loaded page). The caller side
talks to it through a request/response message and recovers once from a
missing listener by injecting the extractor or reloading the page.
"""

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Main modules (imported on demand)
    "shared",
    "extraction",
    "orchestration",
    "cli",
]
