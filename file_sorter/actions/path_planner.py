"""
Path Planner
============

Computes destination directories (``<root>/<Category>/<YYYY-MM-DD>``)
and collision-free file names (``name (1).ext``, ``name (2).ext``, ...).
"""

import os
import re
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Set

from file_sorter.config.categories import Category, is_category_dir_name
from file_sorter.config.settings import DATE_FORMAT
from file_sorter.deduplication.hash_engine import ContentHasher
from file_sorter.utils.exceptions import DestinationPathError, ErrorCode, FileIOError
from file_sorter.utils.logging_config import get_logger

logger = get_logger(__name__)

DATE_DIR_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass
class Placement:
    """Planned target for one file.

    Attributes:
        path: Target file path.
        in_place: The source already sits at this path.
        same_content: Another file with the same digest already sits at
            this path.
        reserved: The path is held for this caller until ``release``.
    """
    path: Path
    in_place: bool = False
    same_content: bool = False
    reserved: bool = False


def candidate_name(file_name: str, attempt: int) -> str:
    """Return the file name for a disambiguation attempt.

    Attempt 0 is the name itself; attempt ``n`` inserts `` (n)`` before
    the extension.
    """
    if attempt == 0:
        return file_name
    stem, dot, extension = file_name.rpartition(".")
    if not dot or not stem:
        return f"{file_name} ({attempt})"
    return f"{stem} ({attempt}).{extension}"


def _relative_parts(path: Path, root: Path) -> Optional[tuple]:
    try:
        return Path(os.path.abspath(path)).relative_to(os.path.abspath(root)).parts
    except ValueError:
        return None


def in_date_directory(path: Path, root: Path) -> bool:
    """Check if a path lies inside ``<root>/<Category>/<YYYY-MM-DD>/``."""
    parts = _relative_parts(path, root)
    return (
        parts is not None
        and len(parts) >= 3
        and is_category_dir_name(parts[0])
        and DATE_DIR_PATTERN.fullmatch(parts[1]) is not None
    )


def in_duplicates_area(path: Path, root: Path, duplicates_folder: str) -> bool:
    """Check if a path lies inside the duplicates holding area."""
    parts = _relative_parts(path, root)
    return parts is not None and len(parts) >= 2 and parts[0] == duplicates_folder


def is_output_path(path: Path, root: Path, duplicates_folder: str) -> bool:
    """Check if a path is something this tool wrote (or will not touch)."""
    return in_date_directory(path, root) or in_duplicates_area(path, root, duplicates_folder)


class PathPlanner:
    """Plans deterministic destination paths.

    Paths handed out by ``plan`` stay reserved until ``release`` so two
    workers never pick the same free name at once.
    """

    def __init__(
        self,
        hasher: Optional[ContentHasher] = None,
        date_format: str = DATE_FORMAT,
        max_attempts: int = 1000,
    ):
        """Initialize the planner.

        Args:
            hasher: Hasher used to compare against files already on disk.
            date_format: strftime format of the date folder.
            max_attempts: Maximum number of names tried per file.
        """
        self.hasher = hasher or ContentHasher()
        self.date_format = date_format
        self.max_attempts = max_attempts
        self._reserved: Set[Path] = set()
        self._lock = threading.Lock()

    def target_directory(self, category: Category, modified: datetime, root: Path) -> Path:
        """Get the destination directory for a category and date."""
        return Path(root) / category.value / modified.strftime(self.date_format)

    def ensure_directory(self, directory: Path) -> Path:
        """Create a directory (and parents) if needed.

        Raises:
            DestinationPathError: If it cannot be created or written.
        """
        directory = Path(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DestinationPathError(
                f"Cannot create directory: {e.strerror or e}",
                file_path=str(directory),
                cause=e,
            ) from e

        if not os.access(directory, os.W_OK | os.X_OK):
            raise DestinationPathError(
                "Directory is not writable",
                file_path=str(directory),
            )
        return directory

    def plan(
        self,
        directory: Path,
        file_name: str,
        digest: str,
        source: Optional[Path] = None,
        match_content: bool = True,
    ) -> Placement:
        """Pick the target path for a file in ``directory``.

        The smallest free candidate wins. A candidate occupied by a file
        with the same digest is returned with ``same_content`` set.

        Args:
            directory: Target directory.
            file_name: Base name of the incoming file.
            digest: Content digest of the incoming file.
            source: Current location of the file, if any.
            match_content: Compare occupied candidates by digest. When
                false every occupied name is simply skipped.

        Returns:
            Placement describing the chosen path.

        Raises:
            DestinationPathError: If every candidate is taken.
        """
        directory = Path(directory)
        source_abs = Path(os.path.abspath(source)) if source is not None else None

        for attempt in range(self.max_attempts):
            candidate = directory / candidate_name(file_name, attempt)

            if source_abs is not None and Path(os.path.abspath(candidate)) == source_abs:
                return Placement(path=candidate, in_place=True)

            with self._lock:
                if candidate in self._reserved:
                    continue
                if not os.path.lexists(candidate):
                    self._reserved.add(candidate)
                    return Placement(path=candidate, reserved=True)

            if match_content and self._holds_content(candidate, digest):
                return Placement(path=candidate, same_content=True)

        raise DestinationPathError(
            f"No free name for '{file_name}' after {self.max_attempts} attempts",
            file_path=str(directory / file_name),
            error_code=ErrorCode.DISAMBIGUATION_EXHAUSTED,
        )

    def release(self, path: Path) -> None:
        """Drop the reservation on a planned path."""
        with self._lock:
            self._reserved.discard(path)

    def _holds_content(self, path: Path, digest: str) -> bool:
        if path.is_symlink() or not path.is_file():
            return False
        try:
            return self.hasher.compute(path) == digest
        except FileIOError as e:
            logger.debug(f"Cannot compare with existing {path}: {e.message}")
            return False
