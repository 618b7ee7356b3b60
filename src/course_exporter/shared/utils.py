"""
Utilities Module - Common helper functions.
==========================================

Provides utility functions for:
- JSON serialization of export artifacts
- File I/O (JSON)
- Directory management
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from course_exporter.shared.logging import get_logger

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# File System Helpers
# ─────────────────────────────────────────────────────────────────────────────


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        The path (for chaining)
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def unique_path(path: Path) -> Path:
    """
    Find a free file path next to ``path``.

    ``course.json`` becomes ``course (1).json``, ``course (2).json``, ...
    when the name is taken.
    """
    path = Path(path)
    if not path.exists():
        return path

    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


# ─────────────────────────────────────────────────────────────────────────────
# JSON
# ─────────────────────────────────────────────────────────────────────────────


def to_jsonable(data: Any) -> Any:
    """Convert pydantic models (wire field names) to plain JSON values."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    return data


def dumps_json(data: Any, indent: int = 2) -> str:
    """
    Serialize data as pretty-printed JSON text.

    Args:
        data: JSON-serializable value or pydantic model
        indent: Indentation level (default: 2)

    Returns:
        JSON text
    """
    return json.dumps(to_jsonable(data), indent=indent, ensure_ascii=False)


def load_json(file_path: Path) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file is not valid JSON
    """
    with open(Path(file_path), "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(file_path: Path, data: Any, indent: int = 2) -> Path:
    """
    Save data to a UTF-8 JSON file.

    Args:
        file_path: Path to JSON file
        data: Data to save (JSON serializable or a pydantic model)
        indent: Indentation level (default: 2)

    Returns:
        The written path
    """
    file_path = Path(file_path)
    ensure_directory(file_path.parent)

    with open(file_path, "w", encoding="utf-8") as f:
        f.write(dumps_json(data, indent=indent))

    logger.debug(f"Saved JSON to {file_path}")
    return file_path
