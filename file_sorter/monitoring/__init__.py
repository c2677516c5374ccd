"""Monitoring module for discovery and filesystem events."""

from .discovery import DiscoveredFiles, discover_files
from .watcher import (
    FileWatcherService,
    OrganizerEventHandler,
    DebounceScheduler,
)
from .queue_manager import (
    ProcessingQueueManager,
    ProcessingTask,
    ProcessingStatus,
    ProcessingStats,
)

__all__ = [
    "DiscoveredFiles",
    "discover_files",
    "FileWatcherService",
    "OrganizerEventHandler",
    "DebounceScheduler",
    "ProcessingQueueManager",
    "ProcessingTask",
    "ProcessingStatus",
    "ProcessingStats",
]
