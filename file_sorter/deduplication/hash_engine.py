"""
Hash Engine
===========

Streams file contents through SHA-256 for duplicate detection.
"""

from pathlib import Path
import hashlib
import os

from file_sorter.utils.logging_config import get_logger
from file_sorter.utils.exceptions import FileIOError, ErrorCode

logger = get_logger(__name__)


class ContentHasher:
    """Computes the full SHA-256 digest of a file.

    Uses buffered reading so memory use does not depend on file size.
    Either a complete digest is returned or ``FileIOError`` is raised.
    """

    BUFFER_SIZE = 65536  # 64KB buffer

    def __init__(self, buffer_size: int = BUFFER_SIZE):
        """Initialize the hasher.

        Args:
            buffer_size: Chunk size in bytes for each read.
        """
        self.buffer_size = buffer_size

    def compute(self, file_path: Path) -> str:
        """Compute the SHA-256 hex digest of a file.

        Args:
            file_path: Path to the file.

        Returns:
            Hexadecimal hash string.

        Raises:
            FileIOError: If the file cannot be read, or changed while it
                was being read.
        """
        hasher = hashlib.sha256()

        try:
            with open(file_path, 'rb') as f:
                before = os.fstat(f.fileno())
                while True:
                    data = f.read(self.buffer_size)
                    if not data:
                        break
                    hasher.update(data)
                after = os.fstat(f.fileno())
        except OSError as e:
            raise FileIOError(
                f"Cannot read file: {e.strerror or e}",
                file_path=str(file_path),
                error_code=ErrorCode.READ_FAILED,
                cause=e,
            ) from e

        if (before.st_size, before.st_mtime_ns) != (after.st_size, after.st_mtime_ns):
            raise FileIOError(
                "File changed while it was being hashed",
                file_path=str(file_path),
                error_code=ErrorCode.FILE_CHANGED_DURING_READ,
            )

        digest = hasher.hexdigest()
        logger.debug(f"Hashed {file_path}: {digest[:12]}", extra={"file_path": str(file_path), "digest": digest})
        return digest
