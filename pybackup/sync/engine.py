"""Core sync engine for executing backup tasks."""

import logging
import time
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import (
    ChecksumError,
    CopyError,
    DeleteError,
    SourceUnreadableError,
    TargetDirectoryError,
)
from ..output import OutputFormatter
from ..utils import format_size, format_timestamp
from .comparator import FileComparator
from .matcher import PathMatcher
from .operations import SyncOperations
from .results import TaskResult
from .scanner import DirectoryScanner, LocalEntry
from .task import SyncTask

logger = logging.getLogger(__name__)


class SyncEngine:
    """Core sync engine that mirrors one task's source into its target.

    A task runs through three phases: source selection, the copy phase
    and (if ``remove_deleted`` is set) the deletion pass. Per-file errors
    are reported and skipped; only a failure to create a target directory
    or to list the source in most-recent mode aborts the task.
    """

    def __init__(
        self,
        output: Optional[OutputFormatter] = None,
        comparator: Optional[FileComparator] = None,
        operations: Optional[SyncOperations] = None,
    ):
        """Initialize sync engine.

        Args:
            output: Output formatter for displaying progress/status
            comparator: Change detector (defaults to CRC-32 comparison)
            operations: Filesystem operations used for copy/mkdir/delete
        """
        self.output = output or OutputFormatter()
        self.comparator = comparator or FileComparator()
        self.operations = operations or SyncOperations()

    def sync_task(self, task: SyncTask, dry_run: bool = False) -> TaskResult:
        """Sync a single task.

        Args:
            task: Task to synchronize
            dry_run: If True, only report what would be done

        Returns:
            TaskResult describing copies, deletions and errors

        Examples:
            >>> engine = SyncEngine()
            >>> task = SyncTask(Path("/data"), Path("/backup"))
            >>> result = engine.sync_task(task, dry_run=True)
            >>> print(f"Would copy {len(result.copied)} files")
        """
        result = TaskResult(task=task, dry_run=dry_run)
        start_time = time.time()

        if not self.output.quiet:
            self.output.info(f"{task.source} -> {task.target}")
            if dry_run:
                self.output.info("Dry run: No changes will be made")

        try:
            with self._progress() as progress:
                entries = self._select_sources(task, result)
                if entries is not None:
                    self._copy_phase(task, entries, result, dry_run, progress)
                    if task.remove_deleted:
                        self._reconcile_deletions(task, result, dry_run, progress)
        except (TargetDirectoryError, SourceUnreadableError) as e:
            result.fatal_error = e.message
            self.output.error(f"Task aborted: {e.message}")

        logger.debug(
            f"Task {task.label} finished in {time.time() - start_time:.2f}s: "
            f"{result.stats}"
        )

        if not self.output.quiet:
            self._display_summary(result)

        return result

    def _progress(self):
        """Transient spinner, or a no-op context when output is quiet."""
        if self.output.quiet:
            return nullcontext(None)
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=self.output.console,
        )

    def _select_sources(self, task: SyncTask, result: TaskResult):
        """Pick the source entries the copy phase will consider.

        Args:
            task: Task being processed
            result: Result to record "no files found" on

        Returns:
            Iterable of LocalEntry, or None if there is nothing to do

        Raises:
            SourceUnreadableError: If the source cannot be listed in
                most-recent mode
        """
        scanner = DirectoryScanner(
            on_error=lambda e: self._report_error(result, "listing", e)
        )
        if task.mode.walks_tree:
            return scanner.walk(task.source)

        files = scanner.list_files(task.source)
        newest: Optional[LocalEntry] = None
        # Sorted by name, so on equal mtimes the last name wins
        for entry in files:
            if newest is None or entry.mtime >= newest.mtime:
                newest = entry

        if newest is None:
            result.no_files_found = True
            self.output.info(f"No files found in {task.source}")
            return None

        logger.debug(
            f"Most recent file in {task.source}: {newest.path.name} "
            f"({format_timestamp(newest.mtime)})"
        )
        return [newest]

    def _copy_phase(
        self,
        task: SyncTask,
        entries,
        result: TaskResult,
        dry_run: bool,
        progress: Optional[Progress],
    ) -> None:
        """Copy every selected source entry that needs it.

        Raises:
            TargetDirectoryError: If a target directory cannot be created
        """
        matcher = PathMatcher(task.exclude)
        progress_task = None
        if progress is not None:
            progress_task = progress.add_task("Scanning source...", total=None)

        for entry in entries:
            relative_path = entry.relative_to(task.source)
            target_path = task.target / relative_path

            if progress is not None and progress_task is not None:
                progress.update(progress_task, description=f"Checking {relative_path}")

            self._process_entry(
                task, entry, relative_path, target_path, matcher, result, dry_run
            )

        if progress is not None and progress_task is not None:
            progress.remove_task(progress_task)

    def _process_entry(
        self,
        task: SyncTask,
        entry: LocalEntry,
        relative_path: Path,
        target_path: Path,
        matcher: PathMatcher,
        result: TaskResult,
        dry_run: bool,
    ) -> None:
        """Run exclusion, change detection and copy for one source entry."""
        if matcher.is_excluded(entry.path):
            if entry.is_file:
                result.excluded.append(entry.path)
                self.output.info(f"Skipping excluded file {entry.path}")
            return

        # Directories are created on demand when their files are copied
        if not entry.is_file:
            return

        try:
            decision = self.comparator.compare(entry.path, target_path, task.skip_crc)
        except ChecksumError as e:
            self._report_error(result, "comparing", e)
            return

        if not decision.needs_copy:
            result.unchanged += 1
            logger.debug(f"{decision.reason}: {relative_path}")
            return

        if not decision.create_parent:
            result.changed.append(relative_path.as_posix())
            self.output.info(f"File changed: {relative_path}")

        if dry_run:
            result.copied.append((entry.path, target_path))
            result.bytes_copied += entry.size
            self.output.info(f"Would copy {entry.path} to {target_path}")
            return

        if decision.create_parent:
            self.operations.ensure_parent(target_path)

        try:
            size = self.operations.copy_file(entry.path, target_path)
        except CopyError as e:
            self._report_error(result, "copying", e)
            return

        result.copied.append((entry.path, target_path))
        result.bytes_copied += size
        self.output.info(f"Copied {entry.path} to {target_path}")

    def _reconcile_deletions(
        self,
        task: SyncTask,
        result: TaskResult,
        dry_run: bool,
        progress: Optional[Progress],
    ) -> None:
        """Delete target entries whose source counterpart no longer exists."""
        scanner = DirectoryScanner(
            on_error=lambda e: self._report_error(result, "listing", e)
        )
        removed_dirs: set[Path] = set()
        progress_task = None
        if progress is not None:
            progress_task = progress.add_task(
                "Checking for deleted files...", total=None
            )

        for entry in scanner.walk(task.target):
            # Contents of a directory already removed (or to be, in dry run)
            if removed_dirs and any(p in removed_dirs for p in entry.path.parents):
                continue

            relative_path = entry.relative_to(task.target)
            source_path = task.source / relative_path
            try:
                if source_path.exists():
                    continue
            except OSError as e:
                self._report_error(result, "checking", e)
                continue

            self.output.info(f"Deleting {entry.path}")
            if progress is not None and progress_task is not None:
                progress.update(progress_task, description=f"Deleting {relative_path}")

            if not dry_run:
                try:
                    self.operations.delete_entry(entry.path)
                except DeleteError as e:
                    self._report_error(result, "deleting", e)
                    continue

            result.deleted.append(entry.path)
            if not entry.is_file:
                removed_dirs.add(entry.path)

        if progress is not None and progress_task is not None:
            progress.remove_task(progress_task)

    def _report_error(self, result: TaskResult, operation: str, error) -> None:
        """Record and display a non-fatal error.

        Args:
            result: Result to record the error on
            operation: What was being done ("copying", "deleting", ...)
            error: PyBackupError or OSError describing the cause
        """
        if isinstance(error, OSError):
            message = f"Error {operation} {error.filename}: {error.strerror or error}"
        else:
            message = error.message
        result.errors.append(message)
        self.output.error(message)

    def _display_summary(self, result: TaskResult) -> None:
        """Display task summary.

        Args:
            result: Result of the finished task
        """
        if result.fatal_error:
            return

        stats = result.stats
        verb = "Would copy" if result.dry_run else "Copied"
        if stats["copied"] or stats["deleted"]:
            self.output.info(
                f"  {verb}: {stats['copied']} file(s), "
                f"{format_size(stats['bytes_copied'])}"
            )
            if stats["deleted"]:
                self.output.info(f"  Deleted: {stats['deleted']} item(s)")
        elif not result.no_files_found:
            self.output.info("  No changes needed - everything is up to date!")

        if stats["excluded"]:
            self.output.info(f"  Excluded: {stats['excluded']} file(s)")
        if stats["errors"]:
            self.output.warning(f"  Errors: {stats['errors']}")
        self.output.print("")
