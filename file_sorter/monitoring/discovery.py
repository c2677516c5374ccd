"""
Directory Discovery
===================

Walks the source tree (and a separate destination tree, if any) and
splits the files into those already sitting in an output date folder
and those still waiting to be organized.
"""

import os
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Iterable, Iterator, List

from file_sorter.actions.path_planner import DATE_DIR_PATTERN, in_date_directory
from file_sorter.config.categories import is_category_dir_name
from file_sorter.utils.exceptions import FileIOError
from file_sorter.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class DiscoveredFiles:
    """Result of a directory walk.

    Attributes:
        organized: Files already inside ``<root>/<Category>/<date>/``.
        pending: Every other candidate file.
        errors: Directories that could not be listed.
    """
    organized: List[Path] = field(default_factory=list)
    pending: List[Path] = field(default_factory=list)
    errors: List[FileIOError] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.organized) + len(self.pending)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def _in_output_tree(directory: Path, root: Path) -> bool:
    """Check if a directory is a category folder or lies below a date folder."""
    try:
        parts = directory.relative_to(root).parts
    except ValueError:
        return False
    if not parts or not is_category_dir_name(parts[0]):
        return False
    return len(parts) == 1 or DATE_DIR_PATTERN.fullmatch(parts[1]) is not None


def _walk_files(
    root: Path,
    skip_dirs: Iterable[Path],
    ignore_patterns: List[str],
    errors: List[FileIOError],
    descend: Callable[[Path], bool] = lambda directory: True,
) -> Iterator[Path]:
    skip = {Path(os.path.abspath(d)) for d in skip_dirs}

    def on_error(error: OSError) -> None:
        directory = error.filename or root
        logger.warning(f"Cannot list directory {directory}: {error.strerror or error}")
        errors.append(FileIOError(
            f"Cannot list directory: {error.strerror or error}",
            file_path=str(directory),
            cause=error,
        ))

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
        current = Path(dirpath)
        dirnames[:] = sorted(
            name for name in dirnames
            if not name.startswith(".")
            and (current / name) not in skip
            and descend(current / name)
        )
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if any(fnmatch(name, pattern) for pattern in ignore_patterns):
                continue
            path = current / name
            try:
                if path.is_symlink():
                    continue
            except OSError as e:
                # Let the organizer report it as a failed file.
                logger.debug(f"Cannot inspect {path}: {e}")
            yield path


def discover_files(
    source_root: Path,
    destination_root: Path,
    duplicates_folder: str = "duplicates",
    ignore_patterns: Iterable[str] = (),
    include_destination: bool = True,
    recursive: bool = True,
) -> DiscoveredFiles:
    """Collect candidate files for a one-shot pass.

    Hidden files and directories, symlinks, ignored names and the
    duplicates holding area are left out. Directories that cannot be
    listed end up in ``errors``; they never abort the walk.

    Args:
        source_root: Tree to organize.
        destination_root: Root of the organized tree.
        duplicates_folder: Holding area folder name under the destination.
        ignore_patterns: Glob patterns of file names to skip.
        include_destination: Also collect organized files from a
            destination root that lies outside the source tree.
        recursive: Collect pending files from subdirectories too. When
            false only files directly in ``source_root`` are pending;
            organized date folders are still walked.

    Returns:
        DiscoveredFiles split into organized and pending lists.
    """
    source_root = Path(os.path.abspath(source_root))
    destination_root = Path(os.path.abspath(destination_root))
    patterns = list(ignore_patterns)
    holding = destination_root / duplicates_folder

    result = DiscoveredFiles()
    if _is_within(source_root, holding):
        return result

    descend = (lambda directory: True) if recursive else (
        lambda directory: _in_output_tree(directory, destination_root)
    )

    for path in _walk_files(source_root, [holding], patterns, result.errors, descend):
        if in_date_directory(path, destination_root):
            result.organized.append(path)
        elif recursive or path.parent == source_root:
            result.pending.append(path)

    # A destination outside the source tree still holds canonical copies
    # from earlier runs.
    if (
        include_destination
        and not _is_within(destination_root, source_root)
        and destination_root.is_dir()
    ):
        for path in _walk_files(
            destination_root, [holding, source_root], patterns, result.errors, descend
        ):
            if in_date_directory(path, destination_root):
                result.organized.append(path)

    logger.info(
        f"Discovered {len(result)} files "
        f"({len(result.organized)} already organized, {len(result.pending)} pending, "
        f"{len(result.errors)} unreadable directories)"
    )
    return result
