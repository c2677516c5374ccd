"""Utilities module for File Sorter."""

from .logging_config import setup_logging, get_logger, LoggingConfig, Timer
from .exceptions import (
    ErrorCode,
    FileSorterError,
    ConfigurationError,
    SourceDirectoryError,
    FileIOError,
    DestinationPathError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingConfig",
    "Timer",
    "ErrorCode",
    "FileSorterError",
    "ConfigurationError",
    "SourceDirectoryError",
    "FileIOError",
    "DestinationPathError",
]
