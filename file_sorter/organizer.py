"""
Organizer
=========

Runs one file through the organization pipeline:

    Discovered -> Hashed -> {Duplicate | Relocating} -> Done | Failed

``Organizer.organize`` never raises for per-file problems; every
outcome, including failures, comes back as an ``OrganizeResult``.
"""

import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from file_sorter.actions.file_operations import FileOperations
from file_sorter.actions.path_planner import PathPlanner, in_duplicates_area
from file_sorter.config.categories import Category, classify, extension_of
from file_sorter.config.settings import DuplicatePolicy
from file_sorter.deduplication.hash_engine import ContentHasher
from file_sorter.deduplication.index import DuplicateIndex
from file_sorter.utils.exceptions import FileIOError, FileSorterError
from file_sorter.utils.logging_config import get_logger, new_correlation_id, set_correlation_id

logger = get_logger(__name__)


class FileState(Enum):
    """States of the per-file pipeline."""
    DISCOVERED = "discovered"
    HASHED = "hashed"
    DUPLICATE = "duplicate"
    RELOCATING = "relocating"
    DONE = "done"
    FAILED = "failed"


class OrganizeAction(Enum):
    """What the pipeline did with a file."""
    MOVED = "moved"
    DUPLICATE = "duplicate"
    ALREADY_ORGANIZED = "already_organized"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class FileEntry:
    """One file under consideration. Rebuilt on every scan or event."""
    path: Path
    extension: str
    size: int
    modified: datetime

    @classmethod
    def from_path(cls, path: Path) -> "FileEntry":
        """Build an entry from the file's current metadata.

        Raises:
            OSError: If the file cannot be stat'ed.
        """
        stat = os.stat(path)
        return cls(
            path=Path(path),
            extension=extension_of(str(path)),
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime),
        )


@dataclass
class DuplicateConflict:
    """Informational record of a file whose content already has a home.

    Attributes:
        source: The duplicate file.
        canonical: Path holding the canonical copy.
        digest: Shared content digest.
        policy: Disposition that was applied.
        disposed_to: Holding-area path when quarantined.
    """
    source: Path
    canonical: Path
    digest: str
    policy: DuplicatePolicy
    disposed_to: Optional[Path] = None


@dataclass
class OrganizeResult:
    """Outcome of organizing one file."""
    source: Path
    action: OrganizeAction
    state: FileState
    transitions: List[FileState] = field(default_factory=list)
    category: Optional[Category] = None
    digest: Optional[str] = None
    destination: Optional[Path] = None
    duplicate: Optional[DuplicateConflict] = None
    error: Optional[FileSorterError] = None
    reason: str = ""

    @classmethod
    def failure(
        cls,
        path: Path,
        error: FileSorterError,
        transitions: Optional[List[FileState]] = None,
    ) -> "OrganizeResult":
        """Build a failed result for ``path``."""
        transitions = list(transitions or [FileState.DISCOVERED])
        transitions.append(FileState.FAILED)
        return cls(
            source=path,
            action=OrganizeAction.FAILED,
            state=FileState.FAILED,
            transitions=transitions,
            error=error,
        )

    @property
    def failed(self) -> bool:
        return self.action is OrganizeAction.FAILED

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "source": str(self.source),
            "action": self.action.value,
            "state": self.state.value,
            "category": self.category.value if self.category else None,
            "digest": self.digest,
            "destination": str(self.destination) if self.destination else None,
            "canonical": str(self.duplicate.canonical) if self.duplicate else None,
            "error": self.error.to_dict() if self.error else None,
            "reason": self.reason,
        }


class RunReport:
    """Thread-safe collection of results for one run."""

    def __init__(self):
        self._results: List[OrganizeResult] = []
        self._lock = threading.Lock()

    def add(self, result: OrganizeResult) -> None:
        with self._lock:
            self._results.append(result)

    @property
    def results(self) -> List[OrganizeResult]:
        with self._lock:
            return list(self._results)

    def by_action(self, action: OrganizeAction) -> List[OrganizeResult]:
        return [r for r in self.results if r.action is action]

    @property
    def failures(self) -> List[OrganizeResult]:
        return self.by_action(OrganizeAction.FAILED)

    @property
    def duplicates(self) -> List[OrganizeResult]:
        return self.by_action(OrganizeAction.DUPLICATE)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def counts(self) -> Dict[str, int]:
        counts = {action.value: 0 for action in OrganizeAction}
        for result in self.results:
            counts[result.action.value] += 1
        return counts

    def summary_lines(self) -> List[str]:
        """Human-readable summary listing every duplicate and failure."""
        counts = self.counts()
        lines = [
            f"Summary: {counts['moved']} moved, {counts['duplicate']} duplicates, "
            f"{counts['already_organized']} already organized, {counts['skipped']} skipped, "
            f"{counts['failed']} failed"
        ]
        for result in sorted(self.duplicates, key=lambda r: str(r.source)):
            conflict = result.duplicate
            target = f" -> {conflict.disposed_to}" if conflict.disposed_to else ""
            lines.append(
                f"  DUPLICATE {result.source} (copy of {conflict.canonical}, {conflict.policy.value}{target})"
            )
        for result in sorted(self.failures, key=lambda r: str(r.source)):
            cause = result.error.message if result.error else result.reason
            lines.append(f"  FAILED    {result.source}: {cause}")
        return lines


class Organizer:
    """Synchronous, idempotent unit of work for one file.

    Safe to call from many worker threads at once as long as the same
    path is never in two calls concurrently.
    """

    def __init__(
        self,
        destination_root: Path,
        index: DuplicateIndex,
        hasher: Optional[ContentHasher] = None,
        planner: Optional[PathPlanner] = None,
        file_ops: Optional[FileOperations] = None,
        policy: DuplicatePolicy = DuplicatePolicy.QUARANTINE,
        duplicates_folder: str = "duplicates",
        ignore_patterns: Iterable[str] = (),
    ):
        """Initialize the organizer.

        Args:
            destination_root: Root of the organized tree.
            index: Shared duplicate index for this run.
            hasher: Content hasher.
            planner: Path planner (shares reservations across workers).
            file_ops: File operations helper.
            policy: Disposition for duplicate files.
            duplicates_folder: Holding area folder under the root.
            ignore_patterns: Glob patterns of file names to skip.
        """
        self.destination_root = Path(os.path.abspath(destination_root))
        self.index = index
        self.hasher = hasher or ContentHasher()
        self.planner = planner or PathPlanner(hasher=self.hasher)
        self.file_ops = file_ops or FileOperations()
        self.policy = policy
        self.duplicates_folder = duplicates_folder
        self.ignore_patterns = list(ignore_patterns)

    def organize(self, path: Path) -> OrganizeResult:
        """Organize a single file.

        Args:
            path: File to organize.

        Returns:
            OrganizeResult describing the terminal state.
        """
        path = Path(os.path.abspath(path))
        set_correlation_id(new_correlation_id())
        transitions = [FileState.DISCOVERED]

        try:
            result = self._organize(path, transitions)
        except FileSorterError as e:
            return self._fail(path, e, transitions)
        except OSError as e:
            error = FileIOError(f"Cannot access file: {e.strerror or e}", file_path=str(path), cause=e)
            return self._fail(path, error, transitions)

        result.transitions = transitions
        return result

    @staticmethod
    def _fail(path: Path, error: FileSorterError, transitions: List[FileState]) -> OrganizeResult:
        logger.error(
            f"Failed: {path}: {error.message}",
            extra={"file_path": str(path), "action": OrganizeAction.FAILED.value},
        )
        return OrganizeResult.failure(path, error, transitions)

    def _organize(self, path: Path, transitions: List[FileState]) -> OrganizeResult:
        reason = self._skip_reason(path)
        if reason:
            logger.debug(f"Skipping {path}: {reason}")
            return self._finish(path, OrganizeAction.SKIPPED, transitions, reason=reason)

        try:
            entry = FileEntry.from_path(path)
        except FileNotFoundError:
            return self._finish(path, OrganizeAction.SKIPPED, transitions, reason="vanished")
        except OSError as e:
            raise FileIOError(
                f"Cannot stat file: {e.strerror or e}", file_path=str(path), cause=e
            ) from e

        category = classify(path.name)
        digest = self.hasher.compute(path)
        transitions.append(FileState.HASHED)

        canonical = self.index.lookup(digest)
        if canonical == path:
            return self._finish(
                path, OrganizeAction.ALREADY_ORGANIZED, transitions,
                category=category, digest=digest, destination=path,
            )
        if canonical is not None:
            return self._dispose_duplicate(entry, category, digest, canonical, transitions)

        directory = self.planner.target_directory(category, entry.modified, self.destination_root)
        placement = self.planner.plan(directory, path.name, digest, source=path)

        try:
            if not self.index.register(digest, placement.path):
                canonical = self.index.lookup(digest)
                return self._dispose_duplicate(entry, category, digest, canonical, transitions)

            if placement.in_place:
                return self._finish(
                    path, OrganizeAction.ALREADY_ORGANIZED, transitions,
                    category=category, digest=digest, destination=path,
                )

            if placement.same_content:
                return self._dispose_duplicate(entry, category, digest, placement.path, transitions)

            transitions.append(FileState.RELOCATING)
            self.planner.ensure_directory(directory)
            final_path = self.file_ops.move(path, placement.path)
        finally:
            if placement.reserved:
                self.planner.release(placement.path)

        logger.info(
            f"Organized: {path} -> {final_path}",
            extra={"file_path": str(path), "category": category.value, "action": OrganizeAction.MOVED.value},
        )
        return self._finish(
            path, OrganizeAction.MOVED, transitions,
            category=category, digest=digest, destination=final_path,
        )

    def _skip_reason(self, path: Path) -> str:
        if path.is_symlink():
            return "symlink"
        if not path.exists():
            return "vanished"
        if not path.is_file():
            return "not a regular file"
        if in_duplicates_area(path, self.destination_root, self.duplicates_folder):
            return "in duplicates holding area"
        if any(fnmatch(path.name, pattern) for pattern in self.ignore_patterns):
            return "matches ignore pattern"
        return ""

    def _dispose_duplicate(
        self,
        entry: FileEntry,
        category: Category,
        digest: str,
        canonical: Path,
        transitions: List[FileState],
    ) -> OrganizeResult:
        transitions.append(FileState.DUPLICATE)
        policy = self.policy

        if policy is not DuplicatePolicy.QUARANTINE and not self._canonical_present(canonical, entry.size):
            logger.warning(
                f"Canonical copy {canonical} is not in place yet; quarantining {entry.path} instead of "
                f"applying '{policy.value}'",
                extra={"file_path": str(entry.path)},
            )
            policy = DuplicatePolicy.QUARANTINE

        conflict = DuplicateConflict(source=entry.path, canonical=canonical, digest=digest, policy=policy)

        if policy is DuplicatePolicy.QUARANTINE:
            conflict.disposed_to = self._quarantine(entry, digest)
        elif policy is DuplicatePolicy.TRASH:
            self.file_ops.trash(entry.path)
        else:
            self.file_ops.delete(entry.path)

        logger.info(
            f"Duplicate: {entry.path} is a copy of {canonical} ({policy.value})",
            extra={"file_path": str(entry.path), "digest": digest, "action": OrganizeAction.DUPLICATE.value},
        )
        return self._finish(
            entry.path, OrganizeAction.DUPLICATE, transitions,
            category=category, digest=digest, destination=conflict.disposed_to, duplicate=conflict,
        )

    def _quarantine(self, entry: FileEntry, digest: str) -> Path:
        holding = self.planner.ensure_directory(self.destination_root / self.duplicates_folder)
        placement = self.planner.plan(holding, entry.path.name, digest, match_content=False)
        try:
            return self.file_ops.move(entry.path, placement.path)
        finally:
            if placement.reserved:
                self.planner.release(placement.path)

    @staticmethod
    def _canonical_present(canonical: Path, size: int) -> bool:
        try:
            return canonical.is_file() and canonical.stat().st_size == size
        except OSError:
            return False

    @staticmethod
    def _finish(
        path: Path,
        action: OrganizeAction,
        transitions: List[FileState],
        **kwargs,
    ) -> OrganizeResult:
        transitions.append(FileState.DONE)
        return OrganizeResult(source=path, action=action, state=FileState.DONE, **kwargs)


__all__ = [
    "FileEntry",
    "FileState",
    "OrganizeAction",
    "OrganizeResult",
    "DuplicateConflict",
    "RunReport",
    "Organizer",
]
