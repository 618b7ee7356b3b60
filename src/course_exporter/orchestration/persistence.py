"""
Persistence Module - Write export artifacts to local storage.
=============================================================

Two interchangeable writers:
- DirectoryWriter: writes into a user-chosen project folder, overwriting
- DownloadWriter: offers files into a downloads folder, never overwriting
  (``name (1).json`` on a clash)

Both write UTF-8 JSON with a 2-space indent by default.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from course_exporter.shared.errors import PersistenceError, UserCancelledError
from course_exporter.shared.logging import get_logger
from course_exporter.shared.utils import ensure_directory, save_json, unique_path

logger = get_logger(__name__)


class JsonWriter(ABC):
    """Writes one JSON-serializable value under a filename."""

    mode: str = ""

    def __init__(self, indent: int = 2):
        self.indent = indent

    @abstractmethod
    def write(self, filename: str, data: Any) -> Path:
        """
        Write ``data`` as JSON.

        Returns:
            The path actually written

        Raises:
            PersistenceError: If the write fails
        """


class DirectoryWriter(JsonWriter):
    """Writes into a chosen root folder, replacing existing files."""

    mode = "directory"

    def __init__(self, root: Path, indent: int = 2):
        super().__init__(indent)
        self.root = Path(root)

    def write(self, filename: str, data: Any) -> Path:
        target = self.root / filename
        try:
            return save_json(target, data, indent=self.indent)
        except OSError as e:
            raise PersistenceError(f"Could not write {filename}: {e}", filename=filename) from e


class DownloadWriter(JsonWriter):
    """Offers files into a downloads folder without prompting."""

    mode = "download"

    def __init__(self, downloads_dir: Path, indent: int = 2):
        super().__init__(indent)
        self.downloads_dir = Path(downloads_dir)

    def write(self, filename: str, data: Any) -> Path:
        try:
            ensure_directory(self.downloads_dir)
            target = unique_path(self.downloads_dir / filename)
            return save_json(target, data, indent=self.indent)
        except OSError as e:
            raise PersistenceError(f"Could not download {filename}: {e}", filename=filename) from e


def choose_directory(
    prompt: Callable[[], Optional[str]],
    indent: int = 2,
) -> DirectoryWriter:
    """
    Ask the user for a project folder.

    Args:
        prompt: Returns the chosen path, or None/"" when the user backs out
        indent: JSON indentation for the writer

    Raises:
        UserCancelledError: If no folder was chosen
    """
    chosen = prompt()
    if not chosen or not str(chosen).strip():
        raise UserCancelledError("Folder selection was cancelled.")
    return DirectoryWriter(Path(str(chosen).strip()).expanduser(), indent=indent)


@dataclass
class SavedArtifacts:
    """Result of writing both artifacts."""

    mode: str
    paths: list[Path] = field(default_factory=list)

    @property
    def filenames(self) -> list[str]:
        return [path.name for path in self.paths]


def save_artifacts(writer: JsonWriter, artifacts: list[tuple[str, Any]]) -> SavedArtifacts:
    """
    Write artifacts in order, stopping at the first failure.

    Raises:
        PersistenceError: Naming the failing file and listing those already written
    """
    saved = SavedArtifacts(mode=writer.mode)

    for filename, data in artifacts:
        try:
            saved.paths.append(writer.write(filename, data))
        except PersistenceError as e:
            written = saved.filenames
            logger.error(f"Write failed for {filename} (already written: {written or 'none'})")
            raise PersistenceError(str(e), filename=filename, written=written) from e
        logger.info(f"Saved {filename}")

    return saved
