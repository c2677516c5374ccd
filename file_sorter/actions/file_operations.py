"""
File Operations
===============

Safe file operations for organizing files.
Moves use an atomic rename on the same volume and fall back to
copy-then-delete across volumes, removing the source only after the
copy is complete and verified.
"""

from pathlib import Path
import errno
import os
import shutil

import send2trash

from file_sorter.utils.logging_config import get_logger
from file_sorter.utils.exceptions import FileIOError, ErrorCode

logger = get_logger(__name__)

PARTIAL_SUFFIX = ".partial"


def partial_path(destination: Path) -> Path:
    """Temporary name used while copying into ``destination``."""
    return destination.with_name(f".{destination.name}{PARTIAL_SUFFIX}")


class FileOperations:
    """Moves and disposes of files without risking data loss.

    Every failure is reported as ``FileIOError`` carrying the source
    path; the source is never removed unless its content is safely at
    the destination.
    """

    BUFFER_SIZE = 1024 * 1024  # 1MB copy chunks

    def __init__(self, buffer_size: int = BUFFER_SIZE):
        """Initialize file operations.

        Args:
            buffer_size: Chunk size for cross-volume copies.
        """
        self.buffer_size = buffer_size

    def move(self, source: Path, destination: Path) -> Path:
        """Move a file to an exact destination path.

        Args:
            source: Source file path.
            destination: Planned destination file path.

        Returns:
            Final path of moved file.

        Raises:
            FileIOError: If the move fails or the destination is taken.
        """
        source = Path(source)
        destination = Path(destination)

        if not source.exists():
            raise FileIOError(
                "Source file does not exist",
                file_path=str(source),
                error_code=ErrorCode.FILE_NOT_FOUND
            )

        if os.path.lexists(destination):
            raise FileIOError(
                f"Destination already exists: {destination}",
                file_path=str(source),
                error_code=ErrorCode.DESTINATION_EXISTS
            )

        try:
            os.rename(source, destination)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise FileIOError(
                    f"Failed to move file: {e.strerror or e}",
                    file_path=str(source),
                    error_code=ErrorCode.MOVE_FAILED,
                    cause=e,
                ) from e
            logger.debug(f"Cross-device move, copying: {source} -> {destination}")
            self._copy_then_delete(source, destination)

        logger.info(f"Moved: {source.name} -> {destination}", extra={"file_path": str(source)})
        return destination

    def _copy_then_delete(self, source: Path, destination: Path) -> None:
        temp = partial_path(destination)

        try:
            with open(source, 'rb') as src, open(temp, 'xb') as dst:
                shutil.copyfileobj(src, dst, self.buffer_size)
                dst.flush()
                os.fsync(dst.fileno())
            shutil.copystat(source, temp)

            expected = source.stat().st_size
            copied = temp.stat().st_size
            if copied != expected:
                raise FileIOError(
                    f"Copy incomplete: {copied} of {expected} bytes",
                    file_path=str(source),
                    error_code=ErrorCode.COPY_FAILED
                )
            if os.path.lexists(destination):
                raise FileIOError(
                    f"Destination appeared during copy: {destination}",
                    file_path=str(source),
                    error_code=ErrorCode.DESTINATION_EXISTS
                )
            os.replace(temp, destination)

        except OSError as e:
            self._discard(temp)
            raise FileIOError(
                f"Failed to copy file: {e.strerror or e}",
                file_path=str(source),
                error_code=ErrorCode.COPY_FAILED,
                cause=e,
            ) from e
        except FileIOError:
            self._discard(temp)
            raise

        try:
            source.unlink()
        except OSError as e:
            raise FileIOError(
                f"Copied to {destination} but could not remove source: {e.strerror or e}",
                file_path=str(source),
                error_code=ErrorCode.DELETE_FAILED,
                cause=e,
            ) from e

    def _discard(self, temp: Path) -> None:
        try:
            temp.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial copy {temp}: {e}")

    def trash(self, file_path: Path) -> None:
        """Send a file to the OS trash.

        Raises:
            FileIOError: If the file cannot be trashed.
        """
        try:
            send2trash.send2trash(str(file_path))
        except OSError as e:
            raise FileIOError(
                f"Failed to move file to trash: {e}",
                file_path=str(file_path),
                error_code=ErrorCode.DELETE_FAILED,
                cause=e,
            ) from e
        logger.info(f"Trashed: {file_path}", extra={"file_path": str(file_path)})

    def delete(self, file_path: Path) -> None:
        """Permanently delete a file.

        Raises:
            FileIOError: If the file cannot be removed.
        """
        try:
            Path(file_path).unlink()
        except OSError as e:
            raise FileIOError(
                f"Failed to delete file: {e.strerror or e}",
                file_path=str(file_path),
                error_code=ErrorCode.DELETE_FAILED,
                cause=e,
            ) from e
        logger.info(f"Deleted: {file_path}", extra={"file_path": str(file_path)})
