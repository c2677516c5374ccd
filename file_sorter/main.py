"""
File Sorter - Main Application
==============================

Main entry point and orchestration for the file organizer.
Wires discovery, the worker pool, the organizer and the watcher together.
"""

import argparse
import os
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from file_sorter.actions import FileOperations, PathPlanner
from file_sorter.config import Config, DuplicatePolicy
from file_sorter.deduplication import ContentHasher, DuplicateIndex
from file_sorter.monitoring import FileWatcherService, ProcessingQueueManager, discover_files
from file_sorter.organizer import OrganizeAction, OrganizeResult, Organizer, RunReport
from file_sorter.utils.exceptions import FileSorterError, SourceDirectoryError
from file_sorter.utils.logging_config import LoggingConfig, Timer, get_logger, setup_logging

logger = get_logger(__name__)

DEFAULT_SOURCE = Path("Downloads")


class FileSorter:
    """Main orchestrator for the file organizer.

    Owns the per-process duplicate index, the worker pool and (in watch
    mode) the filesystem watcher.
    """

    def __init__(self, source_root: Path, config: Optional[Config] = None):
        """Initialize the file sorter.

        Args:
            source_root: Directory to organize.
            config: Resolved configuration.
        """
        self.config = config or Config()
        self.source_root = Path(os.path.abspath(source_root))
        dest = self.config.organization.destination_root
        self.destination_root = Path(os.path.abspath(dest)) if dest else self.source_root

        dedup = self.config.deduplication
        self.index = DuplicateIndex()
        self.hasher = ContentHasher(buffer_size=dedup.hash_buffer_size)
        self.planner = PathPlanner(
            hasher=self.hasher,
            max_attempts=self.config.organization.max_name_attempts,
        )
        self.file_ops = FileOperations()
        self.organizer = Organizer(
            self.destination_root,
            self.index,
            hasher=self.hasher,
            planner=self.planner,
            file_ops=self.file_ops,
            policy=dedup.policy,
            duplicates_folder=dedup.duplicates_folder,
            ignore_patterns=self.config.watcher.ignore_patterns,
        )

        self.report = RunReport()
        self.queue_manager = ProcessingQueueManager(
            processor_callback=self.organizer.organize,
            max_workers=self.config.organization.max_workers,
            completion_callback=self._on_result,
        )
        self.watcher: Optional[FileWatcherService] = None
        self._watching = False

    def preflight(self) -> None:
        """Check the fatal startup conditions.

        Raises:
            SourceDirectoryError: If the source root is missing or unreadable.
            DestinationPathError: If the destination root cannot be created
                or written.
        """
        if not self.source_root.exists():
            raise SourceDirectoryError("Source directory does not exist", directory=str(self.source_root))
        if not self.source_root.is_dir():
            raise SourceDirectoryError("Source path is not a directory", directory=str(self.source_root))
        if not os.access(self.source_root, os.R_OK | os.X_OK):
            raise SourceDirectoryError("Source directory is not readable", directory=str(self.source_root))

        self.planner.ensure_directory(self.destination_root)
        logger.info(f"Source: {self.source_root}")
        logger.info(f"Organizing to: {self.destination_root}")

    def _on_result(self, result: OrganizeResult) -> None:
        """Callback for every finished organizer run."""
        if not self._watching:
            self.report.add(result)
            return

        if result.failed:
            logger.error(
                f"Failed: {result.source}: {result.error}",
                extra={"file_path": str(result.source), "action": result.action.value},
            )
        elif result.action is OrganizeAction.DUPLICATE and result.duplicate is not None:
            logger.info(
                f"Duplicate: {result.source} (copy of {result.duplicate.canonical})",
                extra={"file_path": str(result.source), "action": result.action.value},
            )

    def run_once(self) -> RunReport:
        """Organize every file currently in the tree.

        Files already in a date folder go first so they become the
        canonical copies for their content.

        Returns:
            Report of this pass.
        """
        self.report = RunReport()
        with Timer(logger, "organize pass"):
            found = discover_files(
                self.source_root,
                self.destination_root,
                duplicates_folder=self.config.deduplication.duplicates_folder,
                ignore_patterns=self.config.watcher.ignore_patterns,
                recursive=self.config.watcher.recursive,
            )
            for error in found.errors:
                self.report.add(OrganizeResult.failure(Path(error.file_path), error))
            self.queue_manager.submit_many(found.organized)
            self.queue_manager.wait_idle()
            self.queue_manager.submit_many(found.pending)
            self.queue_manager.wait_idle()
        return self.report

    def start_watching(self) -> None:
        """Start delivering filesystem events to the worker pool."""
        self._watching = True
        self.watcher = FileWatcherService(
            self.source_root,
            self.destination_root,
            self.queue_manager,
            config=self.config.watcher,
            duplicates_folder=self.config.deduplication.duplicates_folder,
        )
        self.watcher.start()
        logger.info("File sorter is running. Press Ctrl+C to stop.")

    def stop(self) -> None:
        """Stop accepting events and let in-flight files finish."""
        logger.info("Stopping file sorter...")
        if self.watcher is not None:
            self.watcher.stop()
        self.queue_manager.shutdown(wait=True)
        logger.info(f"Stopped ({self.queue_manager.get_stats().to_dict()})")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="file-sorter",
        description="File Sorter - organize files by type and date, setting duplicates aside",
    )
    parser.add_argument(
        '--path', '-p',
        type=Path,
        default=DEFAULT_SOURCE,
        help='Directory to organize (default: ./Downloads)'
    )
    parser.add_argument(
        '--watch', '-w',
        action='store_true',
        help='Keep running and organize new files as they appear'
    )
    parser.add_argument(
        '--dest',
        type=Path,
        help='Root of the organized tree (default: the source directory)'
    )
    parser.add_argument(
        '--duplicates',
        choices=[policy.value for policy in DuplicatePolicy],
        help='What to do with duplicate files (default: quarantine)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Number of worker threads'
    )
    parser.add_argument(
        '--quiet-period',
        type=float,
        help='Seconds a file must stay unchanged before it is organized'
    )
    parser.add_argument(
        '--config',
        type=Path,
        help='YAML configuration file'
    )
    parser.add_argument(
        '--log-level',
        default="INFO",
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Write console logs as JSON'
    )
    return parser


def _apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    if args.dest is not None:
        config.organization.destination_root = args.dest
    if args.duplicates is not None:
        config.deduplication.policy = DuplicatePolicy.parse(args.duplicates)
    if args.workers is not None:
        config.organization.max_workers = args.workers
    if args.quiet_period is not None:
        config.watcher.quiet_seconds = args.quiet_period
    return config.validate()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with CLI support.

    Returns:
        Process exit code: 0 on success, 1 if any file failed, 2 on a
        fatal startup error.
    """
    args = build_parser().parse_args(argv)
    setup_logging(LoggingConfig(level=args.log_level, json_format=args.json_logs))

    try:
        config = _apply_overrides(Config.load(args.config), args)
        sorter = FileSorter(args.path, config)
        sorter.preflight()
    except FileSorterError as e:
        logger.critical(f"Cannot start: {e}")
        return 2

    report = sorter.run_once()
    for line in report.summary_lines():
        print(line)

    if not args.watch:
        sorter.stop()
        return 1 if report.has_failures else 0

    stop_event = threading.Event()

    def signal_handler(sig, frame):
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        sorter.start_watching()
    except (RuntimeError, OSError) as e:
        logger.critical(f"Failed to start watcher: {e}")
        sorter.stop()
        return 2

    # Keep main thread alive
    try:
        while not stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        sorter.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
