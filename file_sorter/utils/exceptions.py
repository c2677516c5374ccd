"""
Custom Exceptions
=================

Defines custom exception classes for File Sorter.
All exceptions include error codes for programmatic handling.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Error codes for programmatic error handling."""

    # General errors (1000-1099)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    FILE_NOT_FOUND = 1002
    SOURCE_UNAVAILABLE = 1004

    # File I/O errors (1100-1199)
    READ_FAILED = 1100
    FILE_CHANGED_DURING_READ = 1101
    MOVE_FAILED = 1102
    COPY_FAILED = 1103
    DELETE_FAILED = 1104

    # Destination errors (1200-1299)
    DESTINATION_UNWRITABLE = 1200
    DISAMBIGUATION_EXHAUSTED = 1201
    DESTINATION_EXISTS = 1202


class FileSorterError(Exception):
    """Base exception for all File Sorter errors.

    Attributes:
        message: Human-readable error message.
        error_code: Programmatic error code.
        details: Additional error context.
        cause: Original exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Programmatic error code.
            details: Additional context as key-value pairs.
            cause: Original exception if wrapping another error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    @property
    def file_path(self) -> Optional[str]:
        """Path the error refers to, if any."""
        return self.details.get("file_path")

    def __str__(self) -> str:
        """Return a formatted error string."""
        result = f"[{self.error_code.name}] {self.message}"
        if self.details:
            result += f" | Details: {self.details}"
        if self.cause:
            result += f" | Caused by: {type(self.cause).__name__}: {self.cause}"
        return result

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(FileSorterError):
    """Raised when there's a configuration problem.

    Examples:
        - Invalid configuration file format
        - Unknown duplicate policy
        - Incomplete category table
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            **kwargs
        )


class SourceDirectoryError(FileSorterError):
    """Raised at startup when the source root cannot be used."""

    def __init__(
        self,
        message: str,
        directory: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if directory:
            details["directory"] = directory
        super().__init__(
            message,
            error_code=ErrorCode.SOURCE_UNAVAILABLE,
            details=details,
            **kwargs
        )


class FileIOError(FileSorterError):
    """Raised when reading, moving or deleting a single file fails.

    Examples:
        - File cannot be opened (permission, vanished)
        - Read fails partway or the file changes while hashed
        - Rename/copy fails (disk full, device gone)
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.READ_FAILED,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = file_path
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            **kwargs
        )


class DestinationPathError(FileSorterError):
    """Raised when a destination cannot be planned or created.

    Examples:
        - Destination root not writable
        - No free disambiguated name within the attempt limit
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.DESTINATION_UNWRITABLE,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = file_path
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            **kwargs
        )
