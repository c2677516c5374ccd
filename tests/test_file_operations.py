"""
Unit tests for file operations.
"""

import errno
import os
import shutil
from pathlib import Path

import pytest
import send2trash

from file_sorter.actions.file_operations import FileOperations, partial_path
from file_sorter.utils.exceptions import ErrorCode, FileIOError


def raise_exdev(src, dst):
    raise OSError(errno.EXDEV, "Invalid cross-device link")


@pytest.fixture
def ops():
    return FileOperations()


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "src" / "report.pdf"
    path.parent.mkdir()
    path.write_bytes(b"%PDF-1.4 " + b"x" * 5000)
    return path


@pytest.fixture
def dest_dir(tmp_path):
    path = tmp_path / "dest"
    path.mkdir()
    return path


class TestMove:
    """Tests for FileOperations.move() on one volume."""

    def test_rename(self, ops, source, dest_dir):
        content = source.read_bytes()
        target = dest_dir / "report.pdf"

        assert ops.move(source, target) == target
        assert target.read_bytes() == content
        assert not source.exists()

    def test_missing_source(self, ops, tmp_path, dest_dir):
        with pytest.raises(FileIOError) as exc_info:
            ops.move(tmp_path / "gone.txt", dest_dir / "gone.txt")

        assert exc_info.value.error_code is ErrorCode.FILE_NOT_FOUND

    def test_never_overwrites(self, ops, source, dest_dir):
        """Test an existing destination is left untouched."""
        target = dest_dir / "report.pdf"
        target.write_bytes(b"existing")

        with pytest.raises(FileIOError) as exc_info:
            ops.move(source, target)

        assert exc_info.value.error_code is ErrorCode.DESTINATION_EXISTS
        assert target.read_bytes() == b"existing"
        assert source.exists()

    def test_rename_failure(self, ops, source, dest_dir, monkeypatch):
        def deny(src, dst):
            raise PermissionError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(os, "rename", deny)

        with pytest.raises(FileIOError) as exc_info:
            ops.move(source, dest_dir / "report.pdf")

        assert exc_info.value.error_code is ErrorCode.MOVE_FAILED
        assert exc_info.value.file_path == str(source)
        assert source.exists()


class TestCrossVolumeMove:
    """Tests for the copy-then-delete fallback."""

    def test_copy_then_delete(self, ops, source, dest_dir, monkeypatch):
        content = source.read_bytes()
        mtime = source.stat().st_mtime_ns
        monkeypatch.setattr(os, "rename", raise_exdev)
        target = dest_dir / "report.pdf"

        ops.move(source, target)

        assert target.read_bytes() == content
        assert target.stat().st_mtime_ns == mtime
        assert not source.exists()
        assert not partial_path(target).exists()

    def test_copy_failure_keeps_source(self, ops, source, dest_dir, monkeypatch):
        """Test a failed copy leaves the source intact and no partial file."""
        content = source.read_bytes()
        monkeypatch.setattr(os, "rename", raise_exdev)

        def disk_full(src, dst, length=0):
            dst.write(src.read(100))
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(shutil, "copyfileobj", disk_full)
        target = dest_dir / "report.pdf"

        with pytest.raises(FileIOError) as exc_info:
            ops.move(source, target)

        assert exc_info.value.error_code is ErrorCode.COPY_FAILED
        assert exc_info.value.file_path == str(source)
        assert source.read_bytes() == content
        assert not target.exists()
        assert list(dest_dir.iterdir()) == []

    def test_short_copy_detected(self, ops, source, dest_dir, monkeypatch):
        monkeypatch.setattr(os, "rename", raise_exdev)

        def truncated(src, dst, length=0):
            dst.write(src.read(10))

        monkeypatch.setattr(shutil, "copyfileobj", truncated)

        with pytest.raises(FileIOError) as exc_info:
            ops.move(source, dest_dir / "report.pdf")

        assert exc_info.value.error_code is ErrorCode.COPY_FAILED
        assert source.exists()
        assert list(dest_dir.iterdir()) == []

    def test_source_removal_failure(self, ops, source, dest_dir, monkeypatch):
        """Test the copy survives when the source cannot be removed."""
        monkeypatch.setattr(os, "rename", raise_exdev)
        real_unlink = Path.unlink

        def guarded_unlink(self, *args, **kwargs):
            if self == source:
                raise PermissionError(errno.EACCES, "Permission denied")
            return real_unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", guarded_unlink)
        target = dest_dir / "report.pdf"

        with pytest.raises(FileIOError) as exc_info:
            ops.move(source, target)

        assert exc_info.value.error_code is ErrorCode.DELETE_FAILED
        assert target.exists()
        assert source.exists()


class TestDisposal:
    """Tests for trash() and delete()."""

    def test_delete(self, ops, source):
        ops.delete(source)

        assert not source.exists()

    def test_delete_missing(self, ops, tmp_path):
        with pytest.raises(FileIOError) as exc_info:
            ops.delete(tmp_path / "missing")

        assert exc_info.value.error_code is ErrorCode.DELETE_FAILED

    def test_trash(self, ops, source, monkeypatch):
        trashed = []
        monkeypatch.setattr(send2trash, "send2trash", lambda path: trashed.append(path))

        ops.trash(source)

        assert trashed == [str(source)]

    def test_trash_failure(self, ops, source, monkeypatch):
        def fail(path):
            raise OSError("trash unavailable")

        monkeypatch.setattr(send2trash, "send2trash", fail)

        with pytest.raises(FileIOError):
            ops.trash(source)
