"""
Shared fixtures for the test suite.
"""

import logging
import os
from datetime import datetime
from pathlib import Path

import pytest

from file_sorter.actions import FileOperations, PathPlanner
from file_sorter.config import DuplicatePolicy
from file_sorter.deduplication import ContentHasher, DuplicateIndex
from file_sorter.organizer import Organizer

# Fixed modification time so date folders are predictable.
FIXED_MTIME = datetime(2024, 5, 17, 12, 0, 0)
FIXED_DATE_DIR = "2024-05-17"


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by main() so they do not outlive the test."""
    yield
    logging.getLogger("file_sorter").handlers.clear()


@pytest.fixture
def make_file():
    """Factory writing a file with a fixed modification time."""

    def _make(path: Path, content: bytes = b"content", mtime: datetime = FIXED_MTIME) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        stamp = mtime.timestamp()
        os.utime(path, (stamp, stamp))
        return path

    return _make


@pytest.fixture
def source_dir(tmp_path):
    """Empty source tree."""
    root = tmp_path / "Downloads"
    root.mkdir()
    return root


@pytest.fixture
def make_organizer(source_dir):
    """Factory building an Organizer over ``source_dir`` with a fresh index."""

    def _make(policy: DuplicatePolicy = DuplicatePolicy.QUARANTINE, destination_root: Path = None, **kwargs):
        hasher = ContentHasher()
        return Organizer(
            destination_root or source_dir,
            DuplicateIndex(),
            hasher=hasher,
            planner=PathPlanner(hasher=hasher),
            file_ops=FileOperations(),
            policy=policy,
            **kwargs,
        )

    return _make
