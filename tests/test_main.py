"""
Tests for the application and command line entry point.
"""

import errno
import os
import signal
import time
from pathlib import Path

import pytest

from file_sorter.config import Config, DuplicatePolicy
from file_sorter.deduplication.hash_engine import ContentHasher
from file_sorter.main import FileSorter, build_parser, main
from file_sorter.organizer import OrganizeAction
from file_sorter.utils.exceptions import DestinationPathError, FileIOError, SourceDirectoryError

from conftest import FIXED_DATE_DIR


def tree(root: Path):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.path == Path("Downloads")
        assert args.watch is False
        assert args.duplicates is None

    def test_rejects_unknown_policy(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--duplicates", "shred"])


class TestFileSorter:
    """Tests for the FileSorter application."""

    def test_preflight_missing_source(self, tmp_path):
        sorter = FileSorter(tmp_path / "missing")

        with pytest.raises(SourceDirectoryError):
            sorter.preflight()
        sorter.stop()

    def test_preflight_source_is_file(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        sorter = FileSorter(path)

        with pytest.raises(SourceDirectoryError):
            sorter.preflight()
        sorter.stop()

    def test_preflight_destination_blocked(self, source_dir, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        config = Config()
        config.organization.destination_root = blocker / "sorted"
        sorter = FileSorter(source_dir, config)

        with pytest.raises(DestinationPathError):
            sorter.preflight()
        sorter.stop()

    def test_run_once(self, source_dir, make_file):
        make_file(source_dir / "a.jpg", b"one")
        make_file(source_dir / "b.jpg", b"one")
        make_file(source_dir / "c.mp3", b"two")
        sorter = FileSorter(source_dir)
        sorter.preflight()

        report = sorter.run_once()
        sorter.stop()

        counts = report.counts()
        assert counts["moved"] == 2
        assert counts["duplicate"] == 1
        assert (source_dir / "Audio" / FIXED_DATE_DIR / "c.mp3").exists()
        assert len(list((source_dir / "duplicates").iterdir())) == 1

    def test_second_run_is_noop(self, source_dir, make_file):
        """Test re-running over an organized tree changes nothing."""
        make_file(source_dir / "a.jpg", b"one")
        make_file(source_dir / "copy.jpg", b"one")
        make_file(source_dir / "notes.txt", b"two")
        first = FileSorter(source_dir)
        first.run_once()
        first.stop()
        before = tree(source_dir)

        second = FileSorter(source_dir)
        report = second.run_once()
        second.stop()

        assert tree(source_dir) == before
        assert {r.action for r in report.results} == {OrganizeAction.ALREADY_ORGANIZED}
        assert len(report.results) == 2

    def test_existing_canonical_wins_over_new_copy(self, source_dir, make_file):
        """Test organized files seed the index before pending ones are handled."""
        canonical = make_file(source_dir / "Images" / FIXED_DATE_DIR / "z.jpg", b"same")
        incoming = make_file(source_dir / "a.jpg", b"same")
        sorter = FileSorter(source_dir)

        report = sorter.run_once()
        sorter.stop()

        assert canonical.exists()
        assert not incoming.exists()
        [duplicate] = report.duplicates
        assert duplicate.duplicate.canonical == canonical

    def test_run_once_not_recursive(self, source_dir, make_file):
        make_file(source_dir / "top.txt", b"top")
        nested = make_file(source_dir / "project" / "notes.txt", b"nested")
        config = Config()
        config.watcher.recursive = False
        sorter = FileSorter(source_dir, config)

        report = sorter.run_once()
        sorter.stop()

        assert report.counts()["moved"] == 1
        assert (source_dir / "Documents" / FIXED_DATE_DIR / "top.txt").exists()
        assert nested.exists()

    def test_watch_mode_organizes_new_file(self, source_dir):
        config = Config()
        config.watcher.quiet_seconds = 0.2
        sorter = FileSorter(source_dir, config)
        sorter.preflight()
        sorter.run_once()
        sorter.start_watching()
        try:
            (source_dir / "song.wav").write_bytes(b"riff")
            deadline = time.monotonic() + 10
            while time.monotonic() < deadline and (source_dir / "song.wav").exists():
                time.sleep(0.05)
        finally:
            sorter.stop()

        assert not (source_dir / "song.wav").exists()
        assert [p.name for p in (source_dir / "Audio").rglob("*.wav")] == ["song.wav"]


class TestMain:
    """Tests for the CLI entry point."""

    def test_one_shot_success(self, source_dir, make_file, capsys):
        make_file(source_dir / "report.pdf")

        code = main(["--path", str(source_dir)])

        assert code == 0
        assert (source_dir / "Documents" / FIXED_DATE_DIR / "report.pdf").exists()
        assert "Summary: 1 moved" in capsys.readouterr().out

    def test_missing_source_is_fatal(self, tmp_path):
        assert main(["--path", str(tmp_path / "missing")]) == 2

    def test_bad_config_is_fatal(self, source_dir, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("deduplication: {policy: shred}\n")

        assert main(["--path", str(source_dir), "--config", str(config_path)]) == 2

    def test_invalid_workers_is_fatal(self, source_dir):
        assert main(["--path", str(source_dir), "--workers", "0"]) == 2

    def test_failure_exit_code(self, source_dir, make_file, monkeypatch, capsys):
        """Test a per-file failure is reported and gives exit code 1."""
        make_file(source_dir / "good.txt", b"good")
        bad = make_file(source_dir / "bad.txt", b"bad")
        real_compute = ContentHasher.compute

        def compute(self, file_path):
            if Path(file_path).name == "bad.txt":
                raise FileIOError("Cannot read file: Permission denied", file_path=str(file_path))
            return real_compute(self, file_path)

        monkeypatch.setattr(ContentHasher, "compute", compute)

        code = main(["--path", str(source_dir)])

        assert code == 1
        assert bad.exists()
        assert (source_dir / "Documents" / FIXED_DATE_DIR / "good.txt").exists()
        out = capsys.readouterr().out
        assert f"FAILED    {bad}: Cannot read file" in out

    def test_uninspectable_file_is_a_failure(self, source_dir, make_file, monkeypatch, capsys):
        """Test a file that cannot be inspected fails alone without aborting the run."""
        locked = make_file(source_dir / "locked" / "a.txt", b"locked")
        make_file(source_dir / "good.txt", b"good")
        real_is_symlink = Path.is_symlink

        def is_symlink(self):
            if self == locked:
                raise PermissionError(errno.EACCES, "Permission denied", str(self))
            return real_is_symlink(self)

        monkeypatch.setattr(Path, "is_symlink", is_symlink)

        code = main(["--path", str(source_dir)])

        assert code == 1
        assert locked.exists()
        assert (source_dir / "Documents" / FIXED_DATE_DIR / "good.txt").exists()
        out = capsys.readouterr().out
        assert f"FAILED    {locked}: Cannot access file" in out

    def test_unlistable_directory_is_a_failure(self, source_dir, make_file, monkeypatch, capsys):
        make_file(source_dir / "locked" / "a.txt")
        make_file(source_dir / "good.txt", b"good")
        real_scandir = os.scandir

        def scandir(path="."):
            if os.path.basename(os.fspath(path)) == "locked":
                raise PermissionError(errno.EACCES, "Permission denied", os.fspath(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)

        code = main(["--path", str(source_dir)])

        assert code == 1
        assert (source_dir / "Documents" / FIXED_DATE_DIR / "good.txt").exists()
        out = capsys.readouterr().out
        assert f"FAILED    {source_dir / 'locked'}: Cannot list directory" in out

    def test_watcher_start_failure_is_fatal(self, source_dir, monkeypatch):
        """Test an OS refusal to watch (e.g. inotify limit) exits with code 2."""

        def start_watching(self):
            raise OSError(errno.ENOSPC, "inotify watch limit reached")

        monkeypatch.setattr(FileSorter, "start_watching", start_watching)
        monkeypatch.setattr(signal, "signal", lambda signum, handler: None)

        assert main(["--path", str(source_dir), "--watch"]) == 2

    def test_delete_policy_and_destination(self, source_dir, make_file, tmp_path):
        make_file(source_dir / "a.zip", b"zip")
        make_file(source_dir / "b.zip", b"zip")
        sorted_root = tmp_path / "Sorted"

        code = main([
            "--path", str(source_dir),
            "--dest", str(sorted_root),
            "--duplicates", DuplicatePolicy.DELETE.value,
        "--workers", "1",
        ])

        assert code == 0
        assert list(source_dir.iterdir()) == []
        assert tree(sorted_root) == [f"Archives/{FIXED_DATE_DIR}/a.zip"]
