"""
Processing Queue Manager
========================

Runs the organizer on a fixed-size worker pool.
Guarantees a path is never processed by two workers at once, tracks
status and statistics, and supports graceful shutdown.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

from file_sorter.utils.logging_config import get_logger

logger = get_logger(__name__)


class ProcessingStatus(Enum):
    """Status of a processing task."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ProcessingTask:
    """Represents a file processing task.

    Attributes:
        file_path: Path to the file to process.
        status: Current processing status.
        created_at: When the task was created.
        started_at: When processing started.
        completed_at: When processing completed.
        error: Error message if the processor raised.
    """

    file_path: Path
    status: ProcessingStatus = ProcessingStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def mark_processing(self) -> None:
        """Mark task as currently processing."""
        self.status = ProcessingStatus.PROCESSING
        self.started_at = datetime.now()

    def mark_completed(self) -> None:
        """Mark task as successfully completed."""
        self.status = ProcessingStatus.COMPLETED
        self.completed_at = datetime.now()

    def mark_failed(self, error: str) -> None:
        """Mark task as failed.

        Args:
            error: Error message or description.
        """
        self.status = ProcessingStatus.FAILED
        self.completed_at = datetime.now()
        self.error = error


@dataclass
class ProcessingStats:
    """Statistics for the processing queue."""

    submitted: int = 0
    completed: int = 0
    crashed: int = 0
    coalesced: int = 0
    rejected: int = 0
    processing: int = 0

    def to_dict(self) -> Dict:
        """Convert stats to dictionary."""
        return {
            "submitted": self.submitted,
            "completed": self.completed,
            "crashed": self.crashed,
            "coalesced": self.coalesced,
            "rejected": self.rejected,
            "processing": self.processing,
        }


class ProcessingQueueManager:
    """Dispatches file paths to a thread pool.

    Features:
    - Fixed-size thread pool for parallel processing
    - Per-path exclusivity: a path submitted while in flight is run
      once more after the current run, never concurrently
    - Status tracking and statistics
    - Graceful shutdown that lets in-flight work finish
    """

    def __init__(
        self,
        processor_callback: Callable[[Path], Any],
        max_workers: int = 4,
        completion_callback: Optional[Callable[[Any], None]] = None,
    ):
        """Initialize the queue manager.

        Args:
            processor_callback: Function to process each file path.
            max_workers: Maximum number of worker threads.
            completion_callback: Optional callback receiving each
                processor return value.
        """
        self.processor = processor_callback
        self.max_workers = max_workers
        self.completion_callback = completion_callback

        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="organizer")
        self._accepting = True

        self._active_tasks: Dict[Path, ProcessingTask] = {}
        self._dirty: Set[Path] = set()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)

        self.stats = ProcessingStats()

    def submit(self, file_path: Path) -> bool:
        """Queue a path for processing.

        Args:
            file_path: Path to the file to process.

        Returns:
            False if the manager is shutting down, True otherwise.
        """
        file_path = Path(file_path)
        with self._lock:
            if not self._accepting:
                self.stats.rejected += 1
                logger.debug(f"Rejected (shutting down): {file_path}")
                return False
            self.stats.submitted += 1
            if file_path in self._active_tasks:
                self._dirty.add(file_path)
                self.stats.coalesced += 1
                logger.debug(f"Already in flight, will re-run: {file_path}")
                return True
            self._start_locked(file_path)
        return True

    def submit_many(self, paths) -> int:
        """Queue several paths. Returns how many were accepted."""
        return sum(1 for path in paths if self.submit(path))

    def _start_locked(self, file_path: Path) -> None:
        task = ProcessingTask(file_path=file_path)
        self._active_tasks[file_path] = task
        self.stats.processing += 1
        self.executor.submit(self._process_task, task)

    def _process_task(self, task: ProcessingTask) -> None:
        """Process a single task.

        Args:
            task: The task to process.
        """
        task.mark_processing()
        result = None

        try:
            result = self.processor(task.file_path)
            task.mark_completed()
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            task.mark_failed(error_msg)
            logger.exception(f"Unexpected error processing {task.file_path}: {error_msg}")

        if result is not None and self.completion_callback:
            try:
                self.completion_callback(result)
            except Exception as e:
                logger.error(f"Error in completion callback: {e}")

        with self._lock:
            self.stats.processing -= 1
            if task.status is ProcessingStatus.FAILED:
                self.stats.crashed += 1
            else:
                self.stats.completed += 1

            del self._active_tasks[task.file_path]
            if task.file_path in self._dirty:
                self._dirty.discard(task.file_path)
                if self._accepting:
                    self._start_locked(task.file_path)
            self._idle.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is queued or running.

        Returns:
            True if idle, False on timeout.
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._active_tasks, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work.

        Args:
            wait: Whether to wait for in-flight tasks to complete.
        """
        with self._lock:
            if not self._accepting:
                return
            self._accepting = False
            self._dirty.clear()

        self.executor.shutdown(wait=wait)
        logger.info("Queue manager stopped")

    def get_stats(self) -> ProcessingStats:
        """Get current processing statistics.

        Returns:
            Copy of current statistics.
        """
        with self._lock:
            return ProcessingStats(**self.stats.to_dict())

    def is_idle(self) -> bool:
        """Check if queue manager is idle.

        Returns:
            True if no pending or processing tasks.
        """
        with self._lock:
            return not self._active_tasks
