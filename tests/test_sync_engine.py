"""Tests for the sync engine."""

import errno
import os
import shutil
import tempfile
import zlib
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from pybackup.exceptions import ChecksumError, TargetDirectoryError
from pybackup.output import OutputFormatter
from pybackup.sync import CopyMode, SyncEngine, SyncTask
from pybackup.sync.comparator import FileComparator
from pybackup.sync.operations import SyncOperations


def _write(path: Path, content: str, mtime: float = None) -> Path:
    """Write a file (creating parents) and optionally set its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def _tree(root: Path) -> dict[str, str]:
    """Map relative posix path -> content for every file under root."""
    return {
        p.relative_to(root).as_posix(): p.read_text()
        for p in root.rglob("*")
        if p.is_file()
    }


def _info_messages(output: Mock) -> list[str]:
    return [call.args[0] for call in output.info.call_args_list]


class TestSyncEngine:
    """Test SyncEngine functionality."""

    @pytest.fixture
    def mock_output(self):
        """Create a mock output formatter."""
        output = Mock(spec=OutputFormatter)
        output.quiet = True  # Suppress output during tests
        return output

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def source(self, temp_dir):
        path = temp_dir / "source"
        path.mkdir()
        return path

    @pytest.fixture
    def target(self, temp_dir):
        return temp_dir / "target"

    @pytest.fixture
    def sync_engine(self, mock_output):
        """Create a sync engine instance."""
        return SyncEngine(mock_output)

    def test_create_sync_engine(self, mock_output):
        """Test creating a sync engine."""
        engine = SyncEngine(mock_output)
        assert engine.output == mock_output
        assert isinstance(engine.comparator, FileComparator)
        assert isinstance(engine.operations, SyncOperations)

    def test_copies_tree_to_empty_target(
        self, sync_engine, mock_output, source, target
    ):
        """Source {a.txt, sub/b.txt} into an empty target."""
        _write(source / "a.txt", "x")
        _write(source / "sub" / "b.txt", "y")

        result = sync_engine.sync_task(SyncTask(source=source, target=target))

        assert _tree(target) == {"a.txt": "x", "sub/b.txt": "y"}
        assert len(result.copied) == 2
        assert result.deleted == []
        assert result.success
        copy_reports = [
            m for m in _info_messages(mock_output) if m.startswith("Copied")
        ]
        assert len(copy_reports) == 2
        assert f"Copied {source / 'a.txt'} to {target / 'a.txt'}" in copy_reports

    def test_mapping_preserves_content_checksums(self, sync_engine, source, target):
        """Every copied file has the same CRC-32 as its source."""
        _write(source / "a" / "b" / "deep.bin", "deep content")
        _write(source / "top.txt", "top")

        sync_engine.sync_task(SyncTask(source=source, target=target))

        for rel in ("a/b/deep.bin", "top.txt"):
            src_crc = zlib.crc32((source / rel).read_bytes())
            dst_crc = zlib.crc32((target / rel).read_bytes())
            assert src_crc == dst_crc

    def test_second_run_copies_nothing(self, sync_engine, source, target):
        """Running the same task twice is idempotent."""
        _write(source / "a.txt", "x")
        _write(source / "sub" / "b.txt", "y")
        task = SyncTask(source=source, target=target)

        first = sync_engine.sync_task(task)
        second = sync_engine.sync_task(task)

        assert len(first.copied) == 2
        assert second.copied == []
        assert second.unchanged == 2

    def test_second_run_with_skip_crc_copies_nothing(self, sync_engine, source, target):
        """With skip_crc, existence alone makes the second run a no-op."""
        _write(source / "a.txt", "x")
        task = SyncTask(source=source, target=target, skip_crc=True)

        sync_engine.sync_task(task)
        second = sync_engine.sync_task(task)

        assert second.copied == []
        assert second.unchanged == 1

    def test_changed_file_is_recopied(self, sync_engine, mock_output, source, target):
        """A target with different content is overwritten."""
        _write(source / "a.txt", "new content")
        _write(target / "a.txt", "old")

        result = sync_engine.sync_task(SyncTask(source=source, target=target))

        assert (target / "a.txt").read_text() == "new content"
        assert result.changed == ["a.txt"]
        assert "File changed: a.txt" in _info_messages(mock_output)

    def test_identical_file_is_not_recopied(self, sync_engine, source, target):
        """A target with identical content is left alone."""
        _write(source / "a.txt", "same")
        _write(target / "a.txt", "same")

        with patch.object(SyncOperations, "copy_file") as mock_copy:
            result = sync_engine.sync_task(SyncTask(source=source, target=target))

        mock_copy.assert_not_called()
        assert result.copied == []
        assert result.unchanged == 1

    def test_skip_crc_does_not_recopy_stale_target(self, sync_engine, source, target):
        """skip_crc trusts an existing target even when its content differs."""
        _write(source / "a.txt", "new content")
        _write(target / "a.txt", "stale")

        result = sync_engine.sync_task(
            SyncTask(source=source, target=target, skip_crc=True)
        )

        assert (target / "a.txt").read_text() == "stale"
        assert result.copied == []

    def test_excluded_paths_are_not_copied(
        self, sync_engine, mock_output, source, target
    ):
        """Exclude patterns match anywhere in the source path."""
        _write(source / "keep.txt", "k")
        _write(source / ".git" / "config", "c")
        _write(source / "build" / "cache.tmp", "t")
        _write(source / "notes.tmp.txt", "n")

        result = sync_engine.sync_task(
            SyncTask(source=source, target=target, exclude=[".git", ".tmp"])
        )

        assert _tree(target) == {"keep.txt": "k"}
        assert sorted(p.name for p in result.excluded) == [
            "cache.tmp",
            "config",
            "notes.tmp.txt",
        ]
        assert (
            f"Skipping excluded file {source / '.git' / 'config'}"
            in _info_messages(mock_output)
        )

    def test_excluded_file_does_not_update_existing_target(
        self, sync_engine, source, target
    ):
        """An excluded file leaves an existing target copy untouched."""
        _write(source / "secret.key", "new")
        _write(target / "secret.key", "old")

        sync_engine.sync_task(SyncTask(source=source, target=target, exclude=["key"]))

        assert (target / "secret.key").read_text() == "old"

    def test_missing_source_copies_nothing(self, sync_engine, temp_dir, target):
        """A source that does not exist yields zero entries, not an error."""
        result = sync_engine.sync_task(
            SyncTask(source=temp_dir / "missing", target=target)
        )

        assert result.copied == []
        assert result.success
        assert not target.exists()

    def test_empty_source_copies_nothing(self, sync_engine, source, target):
        """An empty source directory produces no copies."""
        result = sync_engine.sync_task(SyncTask(source=source, target=target))

        assert result.copied == []
        assert result.success

    def test_empty_directories_are_not_created(self, sync_engine, source, target):
        """Directories are only created when a file needs them."""
        (source / "empty").mkdir()
        _write(source / "a.txt", "x")

        sync_engine.sync_task(SyncTask(source=source, target=target))

        assert (target / "a.txt").exists()
        assert not (target / "empty").exists()

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_are_skipped(self, sync_engine, source, target):
        """Symbolic links are treated as non-regular entries."""
        real = _write(source / "real.txt", "r")
        try:
            os.symlink(real, source / "link.txt")
        except OSError:
            pytest.skip("cannot create symlinks")

        sync_engine.sync_task(SyncTask(source=source, target=target))

        assert (target / "real.txt").exists()
        assert not os.path.lexists(target / "link.txt")


class TestSyncEngineDeletion:
    """Tests for the deletion reconciliation pass."""

    @pytest.fixture
    def mock_output(self):
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        return output

    @pytest.fixture
    def sync_engine(self, mock_output):
        return SyncEngine(mock_output)

    @pytest.fixture
    def dirs(self, tmp_path):
        source = tmp_path / "source"
        target = tmp_path / "target"
        source.mkdir()
        target.mkdir()
        return source, target

    def test_deletes_file_missing_from_source(self, sync_engine, mock_output, dirs):
        """Source {a.txt}, target {a.txt, old.txt} -> old.txt deleted."""
        source, target = dirs
        _write(source / "a.txt", "x")
        _write(target / "a.txt", "x")
        _write(target / "old.txt", "z")

        result = sync_engine.sync_task(
            SyncTask(source=source, target=target, remove_deleted=True)
        )

        assert _tree(target) == {"a.txt": "x"}
        assert result.deleted == [target / "old.txt"]
        assert result.copied == []
        delete_reports = [
            m for m in _info_messages(mock_output) if m.startswith("Deleting")
        ]
        assert delete_reports == [f"Deleting {target / 'old.txt'}"]

    def test_deletes_directory_recursively(self, sync_engine, dirs):
        """A directory missing from the source is removed with its contents."""
        source, target = dirs
        _write(source / "keep" / "k.txt", "k")
        _write(target / "keep" / "k.txt", "k")
        _write(target / "gone" / "nested" / "g.txt", "g")
        _write(target / "gone" / "h.txt", "h")

        result = sync_engine.sync_task(
            SyncTask(source=source, target=target, remove_deleted=True)
        )

        assert not (target / "gone").exists()
        assert (target / "keep" / "k.txt").read_text() == "k"
        # Only the directory itself is reported, not its contents
        assert result.deleted == [target / "gone"]
        assert result.success

    def test_without_remove_deleted_keeps_extra_files(self, sync_engine, dirs):
        source, target = dirs
        _write(source / "a.txt", "x")
        _write(target / "old.txt", "z")

        result = sync_engine.sync_task(SyncTask(source=source, target=target))

        assert (target / "old.txt").exists()
        assert result.deleted == []

    def test_deletion_ignores_exclude_patterns(self, sync_engine, dirs):
        """Exclusion applies to the copy phase only."""
        source, target = dirs
        _write(target / "old.log", "z")

        sync_engine.sync_task(
            SyncTask(source=source, target=target, exclude=["old"], remove_deleted=True)
        )

        assert not (target / "old.log").exists()

    def test_excluded_source_file_keeps_its_target(self, sync_engine, dirs):
        """A target whose source still exists survives, even if excluded."""
        source, target = dirs
        _write(source / "skip.me", "s")
        _write(target / "skip.me", "t")

        sync_engine.sync_task(
            SyncTask(
                source=source, target=target, exclude=["skip"], remove_deleted=True
            )
        )

        assert (target / "skip.me").read_text() == "t"

    def test_delete_failure_is_reported_and_pass_continues(
        self, sync_engine, mock_output, dirs
    ):
        source, target = dirs
        _write(target / "a.txt", "a")
        _write(target / "b.txt", "b")

        real_unlink = Path.unlink

        def failing_unlink(path, *args, **kwargs):
            if path.name == "a.txt":
                raise PermissionError(13, "Permission denied", str(path))
            return real_unlink(path, *args, **kwargs)

        with patch.object(Path, "unlink", failing_unlink):
            result = sync_engine.sync_task(
                SyncTask(source=source, target=target, remove_deleted=True)
            )

        assert (target / "a.txt").exists()
        assert not (target / "b.txt").exists()
        assert result.deleted == [target / "b.txt"]
        assert len(result.errors) == 1
        assert "Error deleting" in result.errors[0]
        assert result.fatal_error is None
        mock_output.error.assert_called_once()

    def test_dry_run_reports_without_deleting(self, sync_engine, dirs):
        source, target = dirs
        _write(target / "gone" / "g.txt", "g")
        _write(target / "old.txt", "z")

        result = sync_engine.sync_task(
            SyncTask(source=source, target=target, remove_deleted=True), dry_run=True
        )

        assert (target / "old.txt").exists()
        assert (target / "gone" / "g.txt").exists()
        assert sorted(result.deleted) == [target / "gone", target / "old.txt"]


class TestSyncEngineMostRecent:
    """Tests for most-recent-only mode."""

    @pytest.fixture
    def mock_output(self):
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        return output

    @pytest.fixture
    def sync_engine(self, mock_output):
        return SyncEngine(mock_output)

    def _task(self, source: Path, target: Path, **kwargs) -> SyncTask:
        return SyncTask(
            source=source, target=target, mode=CopyMode.MOST_RECENT_ONLY, **kwargs
        )

    def test_copies_only_newest_file(self, sync_engine, tmp_path):
        source = tmp_path / "source"
        target = tmp_path / "target"
        _write(source / "dump1.sql", "1", mtime=1_000_000)
        _write(source / "dump3.sql", "3", mtime=3_000_000)
        _write(source / "dump2.sql", "2", mtime=2_000_000)

        result = sync_engine.sync_task(self._task(source, target))

        assert _tree(target) == {"dump3.sql": "3"}
        assert result.copied == [(source / "dump3.sql", target / "dump3.sql")]

    def test_ignores_subdirectories(self, sync_engine, tmp_path):
        """Only direct children are candidates."""
        source = tmp_path / "source"
        target = tmp_path / "target"
        _write(source / "old.txt", "o", mtime=1_000_000)
        _write(source / "sub" / "newer.txt", "n", mtime=5_000_000)

        sync_engine.sync_task(self._task(source, target))

        assert _tree(target) == {"old.txt": "o"}

    def test_tie_picks_last_name(self, sync_engine, tmp_path):
        """Equal mtimes resolve to the last file in name order."""
        source = tmp_path / "source"
        target = tmp_path / "target"
        _write(source / "a.txt", "a", mtime=2_000_000)
        _write(source / "c.txt", "c", mtime=2_000_000)
        _write(source / "b.txt", "b", mtime=2_000_000)

        sync_engine.sync_task(self._task(source, target))

        assert _tree(target) == {"c.txt": "c"}

    def test_empty_source_reports_no_files(self, sync_engine, mock_output, tmp_path):
        source = tmp_path / "source"
        source.mkdir()

        result = sync_engine.sync_task(self._task(source, tmp_path / "target"))

        assert result.no_files_found
        assert result.copied == []
        assert result.success
        mock_output.info.assert_any_call(f"No files found in {source}")

    def test_missing_source_reports_no_files(self, sync_engine, tmp_path):
        source = tmp_path / "missing"

        result = sync_engine.sync_task(self._task(source, tmp_path / "target"))

        assert result.no_files_found
        assert result.fatal_error is None

    def test_no_files_found_skips_deletion_pass(self, sync_engine, tmp_path):
        source = tmp_path / "source"
        source.mkdir()
        target = tmp_path / "target"
        _write(target / "old.txt", "z")

        sync_engine.sync_task(self._task(source, target, remove_deleted=True))

        assert (target / "old.txt").exists()

    def test_excluded_newest_file_is_not_copied(self, sync_engine, tmp_path):
        """The newest file is picked first, then exclusion applies."""
        source = tmp_path / "source"
        target = tmp_path / "target"
        _write(source / "old.txt", "o", mtime=1_000_000)
        _write(source / "new.partial", "n", mtime=2_000_000)

        result = sync_engine.sync_task(
            self._task(source, target, exclude=[".partial"])
        )

        assert result.copied == []
        assert result.excluded == [source / "new.partial"]

    def test_unreadable_source_aborts_task(self, sync_engine, tmp_path):
        source = tmp_path / "source"
        source.mkdir()

        with patch(
            "pybackup.sync.scanner.os.scandir",
            side_effect=PermissionError(13, "Permission denied", str(source)),
        ):
            result = sync_engine.sync_task(self._task(source, tmp_path / "target"))

        assert result.fatal_error is not None
        assert "Error listing" in result.fatal_error
        assert not result.no_files_found


class TestSyncEngineErrors:
    """Tests for per-file and fatal error handling."""

    @pytest.fixture
    def mock_output(self):
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        return output

    @pytest.fixture
    def dirs(self, tmp_path):
        source = tmp_path / "source"
        source.mkdir()
        return source, tmp_path / "target"

    def test_target_check_failure_skips_only_that_file(self, mock_output, dirs):
        """A target path that cannot even be checked (e.g. name too long) is
        reported; the remaining files are still copied."""
        source, target = dirs
        for name in ("a.txt", "b.txt", "c.txt"):
            _write(source / name, name)

        real_exists = Path.exists

        def failing_exists(path, *args, **kwargs):
            if path == target / "b.txt":
                raise OSError(errno.ENAMETOOLONG, "File name too long", str(path))
            return real_exists(path, *args, **kwargs)

        engine = SyncEngine(mock_output)
        with patch.object(Path, "exists", failing_exists):
            result = engine.sync_task(SyncTask(source=source, target=target))

        assert (target / "a.txt").read_text() == "a.txt"
        assert (target / "c.txt").read_text() == "c.txt"
        assert not (target / "b.txt").exists()
        assert result.fatal_error is None
        assert len(result.errors) == 1
        assert result.errors[0].startswith(f"Error checking {target / 'b.txt'}:")

    def test_source_check_failure_skips_only_that_deletion(
        self, mock_output, dirs
    ):
        """The deletion pass reports an unanswerable existence check and keeps
        going."""
        source, target = dirs
        _write(target / "old.txt", "o")
        _write(target / "stale.txt", "s")

        real_exists = Path.exists

        def failing_exists(path, *args, **kwargs):
            if path == source / "old.txt":
                raise PermissionError(13, "Permission denied", str(path))
            return real_exists(path, *args, **kwargs)

        engine = SyncEngine(mock_output)
        with patch.object(Path, "exists", failing_exists):
            result = engine.sync_task(
                SyncTask(source=source, target=target, remove_deleted=True)
            )

        assert (target / "old.txt").exists()
        assert not (target / "stale.txt").exists()
        assert result.deleted == [target / "stale.txt"]
        assert result.errors == [
            f"Error checking {source / 'old.txt'}: Permission denied"
        ]
        assert result.fatal_error is None

    def test_copy_failure_is_reported_and_next_file_copied(self, mock_output, dirs):
        source, target = dirs
        _write(source / "a.txt", "a")
        _write(source / "b.txt", "b")

        real_copy = shutil.copy

        def failing_copy(src, dst, *args, **kwargs):
            if Path(src).name == "a.txt":
                raise PermissionError(13, "Permission denied", str(dst))
            return real_copy(src, dst, *args, **kwargs)

        engine = SyncEngine(mock_output)
        with patch("pybackup.sync.operations.shutil.copy", failing_copy):
            result = engine.sync_task(SyncTask(source=source, target=target))

        assert not (target / "a.txt").exists()
        assert (target / "b.txt").read_text() == "b"
        assert len(result.errors) == 1
        assert "Error copying" in result.errors[0]
        assert result.fatal_error is None
        assert not result.success

    def test_checksum_failure_skips_file(self, mock_output, dirs):
        """A checksum read failure is reported; the file is neither copied nor
        counted as unchanged."""
        source, target = dirs
        _write(source / "a.txt", "new")
        _write(target / "a.txt", "old")

        comparator = Mock(spec=FileComparator)
        comparator.compare.side_effect = ChecksumError(
            "Error reading a.txt: denied", path=source / "a.txt"
        )
        engine = SyncEngine(mock_output, comparator=comparator)

        result = engine.sync_task(SyncTask(source=source, target=target))

        assert (target / "a.txt").read_text() == "old"
        assert result.copied == []
        assert result.unchanged == 0
        assert result.errors == ["Error reading a.txt: denied"]
        mock_output.error.assert_called_once_with("Error reading a.txt: denied")

    def test_target_dir_failure_aborts_task(self, mock_output, dirs, tmp_path):
        """Failing to create a target directory stops the task."""
        source, _ = dirs
        _write(source / "a.txt", "a")
        blocker = _write(tmp_path / "blocker", "i am a file")

        engine = SyncEngine(mock_output)
        result = engine.sync_task(SyncTask(source=source, target=blocker / "sub"))

        assert result.fatal_error is not None
        assert "Error creating target directory" in result.fatal_error
        assert result.copied == []
        assert not result.success

    def test_target_dir_failure_skips_deletion_pass(self, mock_output, dirs):
        source, target = dirs
        _write(source / "new" / "a.txt", "a")
        _write(target / "old.txt", "z")

        operations = SyncOperations()
        engine = SyncEngine(mock_output, operations=operations)
        with patch.object(
            operations,
            "ensure_parent",
            side_effect=TargetDirectoryError("Error creating target directory"),
        ):
            result = engine.sync_task(
                SyncTask(source=source, target=target, remove_deleted=True)
            )

        assert result.fatal_error == "Error creating target directory"
        assert (target / "old.txt").exists()


class TestSyncEngineDryRun:
    """Tests for dry-run mode."""

    def test_dry_run_does_not_touch_target(self, tmp_path):
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        source = tmp_path / "source"
        target = tmp_path / "target"
        _write(source / "a.txt", "x")
        _write(source / "sub" / "b.txt", "yy")

        result = SyncEngine(output).sync_task(
            SyncTask(source=source, target=target), dry_run=True
        )

        assert not target.exists()
        assert len(result.copied) == 2
        assert result.bytes_copied == 3
        assert result.dry_run
