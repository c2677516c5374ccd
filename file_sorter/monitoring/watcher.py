"""
Filesystem Watcher
==================

Monitors the source tree for new files and hands each path to the
processing queue once it has been quiet for a while. Output written by
the organizer itself is never fed back in.
"""

import os
import threading
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from file_sorter.actions.path_planner import is_output_path
from file_sorter.config.settings import WatcherConfig
from file_sorter.monitoring.discovery import discover_files
from file_sorter.monitoring.queue_manager import ProcessingQueueManager
from file_sorter.utils.logging_config import get_logger

logger = get_logger(__name__)


class DebounceScheduler:
    """Per-path quiet-period timers.

    Every ``touch`` restarts the timer for that path. When a timer runs
    out without another touch, ``callback`` is called once with the path.
    """

    def __init__(self, quiet_seconds: float, callback: Callable[[Path], None]):
        """Initialize the scheduler.

        Args:
            quiet_seconds: Time a path must go without events.
            callback: Called with the path once it is quiet.
        """
        self.quiet_seconds = quiet_seconds
        self.callback = callback
        self._timers: Dict[Path, threading.Timer] = {}
        self._generations: Dict[Path, int] = {}
        self._lock = threading.Lock()
        self._closed = False

    def touch(self, path: Path) -> None:
        """Record an event for a path, restarting its quiet period."""
        path = Path(path)
        with self._lock:
            if self._closed:
                return
            previous = self._timers.pop(path, None)
            if previous is not None:
                previous.cancel()
            generation = self._generations.get(path, 0) + 1
            self._generations[path] = generation

            timer = threading.Timer(self.quiet_seconds, self._fire, args=(path, generation))
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _fire(self, path: Path, generation: int) -> None:
        with self._lock:
            # A later touch may have raced with this timer expiring.
            if self._closed or self._generations.get(path) != generation:
                return
            del self._timers[path]
            del self._generations[path]

        try:
            self.callback(path)
        except Exception as e:
            logger.error(f"Error handing off stable path {path}: {e}")

    def pending_count(self) -> int:
        """Number of paths still waiting out their quiet period."""
        with self._lock:
            return len(self._timers)

    def cancel_all(self) -> None:
        """Drop all pending timers and refuse new touches."""
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
            self._generations.clear()
        for timer in timers:
            timer.cancel()


class OrganizerEventHandler(FileSystemEventHandler):
    """Filters watchdog events and feeds the debounce scheduler.

    Runs on the observer thread, so it only does path checks and timer
    bookkeeping; all file I/O happens on the worker pool.
    """

    def __init__(
        self,
        source_root: Path,
        destination_root: Path,
        scheduler: DebounceScheduler,
        duplicates_folder: str = "duplicates",
        ignore_patterns: Iterable[str] = (),
    ):
        """Initialize the event handler.

        Args:
            source_root: Watched tree.
            destination_root: Root of the organized tree.
            scheduler: Debounce scheduler receiving accepted paths.
            duplicates_folder: Holding area folder under the destination.
            ignore_patterns: Glob patterns for file names to ignore.
        """
        super().__init__()
        self.source_root = Path(os.path.abspath(source_root))
        self.destination_root = Path(os.path.abspath(destination_root))
        self.scheduler = scheduler
        self.duplicates_folder = duplicates_folder
        self.ignore_patterns = list(ignore_patterns)

    def should_ignore(self, file_path: Path) -> bool:
        """Check whether an event path must not trigger processing.

        Args:
            file_path: Path from the event.

        Returns:
            True if the path is outside the source tree, part of the
            organizer's own output, hidden, or matches an ignore pattern.
        """
        path = Path(os.path.abspath(file_path))
        try:
            relative = path.relative_to(self.source_root)
        except ValueError:
            return True

        if any(part.startswith(".") for part in relative.parts):
            return True
        if any(fnmatch(path.name, pattern) for pattern in self.ignore_patterns):
            return True
        return is_output_path(path, self.destination_root, self.duplicates_folder)

    def _handle_path(self, raw_path) -> None:
        path = Path(os.fsdecode(raw_path))
        if self.should_ignore(path):
            logger.debug(f"Ignoring event for {path}")
            return
        self.scheduler.touch(path)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file and directory creation events."""
        self._handle_path(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events (chunked writes)."""
        if event.is_directory:
            return
        self._handle_path(event.src_path)

    def on_closed(self, event: FileSystemEvent) -> None:
        """Handle write-close events."""
        if event.is_directory:
            return
        self._handle_path(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle renames into (or within) the watched tree."""
        self._handle_path(event.dest_path)


class FileWatcherService:
    """Main watcher service for the source tree.

    Manages the watchdog Observer, the debounce scheduler, and the
    hand-off of stable paths to the processing queue.
    """

    def __init__(
        self,
        source_root: Path,
        destination_root: Path,
        queue_manager: ProcessingQueueManager,
        config: Optional[WatcherConfig] = None,
        duplicates_folder: str = "duplicates",
    ):
        """Initialize the watcher service.

        Args:
            source_root: Tree to watch.
            destination_root: Root of the organized tree.
            queue_manager: Pool receiving stable paths.
            config: Watcher configuration.
            duplicates_folder: Holding area folder under the destination.
        """
        self.config = config or WatcherConfig()
        self.source_root = Path(os.path.abspath(source_root))
        self.destination_root = Path(os.path.abspath(destination_root))
        self.queue_manager = queue_manager
        self.duplicates_folder = duplicates_folder

        self.scheduler = DebounceScheduler(self.config.quiet_seconds, self._on_stable)
        self.handler = OrganizerEventHandler(
            self.source_root,
            self.destination_root,
            self.scheduler,
            duplicates_folder=duplicates_folder,
            ignore_patterns=self.config.ignore_patterns,
        )
        self.observer = Observer()
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running and self.observer.is_alive()

    def _on_stable(self, path: Path) -> None:
        """Hand a quiet path to the queue.

        A quiet directory only means no entries were added or removed;
        files inside it may still be written. Each of them gets its own
        quiet period before it is queued.
        """
        if path.is_dir() and not path.is_symlink():
            if not self.config.recursive:
                return
            found = discover_files(
                path,
                self.destination_root,
                duplicates_folder=self.duplicates_folder,
                ignore_patterns=self.config.ignore_patterns,
                include_destination=False,
            )
            for error in found.errors:
                logger.error(f"Failed: {error.file_path}: {error.message}")
            for file_path in found.pending:
                self.scheduler.touch(file_path)
            return
        logger.debug(f"Stable, enqueuing: {path}")
        self.queue_manager.submit(path)

    def start(self) -> None:
        """Start watching the source tree.

        Raises:
            RuntimeError: If the source root is not a directory.
        """
        if not self.source_root.is_dir():
            raise RuntimeError(f"Cannot watch missing directory: {self.source_root}")

        self.observer.schedule(self.handler, str(self.source_root), recursive=self.config.recursive)
        self.observer.start()
        self._running = True
        logger.info(f"Watching directory: {self.source_root} (quiet period {self.config.quiet_seconds}s)")

    def stop(self) -> None:
        """Stop delivering events and drop pending quiet-period timers."""
        if self._running:
            self._running = False
            self.observer.stop()
            self.observer.join(timeout=5.0)
            logger.info("File watcher stopped")
        self.scheduler.cancel_all()
