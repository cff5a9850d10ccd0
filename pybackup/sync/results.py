"""Outcome records returned by the sync engine and task runner."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .task import SyncTask


@dataclass
class TaskResult:
    """What happened while processing one task."""

    task: SyncTask
    """Task that was processed"""

    dry_run: bool = False
    """Whether filesystem changes were only reported"""

    copied: list[tuple[Path, Path]] = field(default_factory=list)
    """(source, target) pairs that were copied"""

    changed: list[str] = field(default_factory=list)
    """Relative paths whose content differed from the existing target"""

    excluded: list[Path] = field(default_factory=list)
    """Source files skipped because of an exclude pattern"""

    unchanged: int = 0
    """Number of files whose target was already up to date"""

    deleted: list[Path] = field(default_factory=list)
    """Target entries removed by the deletion pass"""

    errors: list[str] = field(default_factory=list)
    """Reported per-file errors (the task kept running)"""

    bytes_copied: int = 0
    """Total size of copied files"""

    no_files_found: bool = False
    """Most-recent mode found no file in the source directory"""

    fatal_error: Optional[str] = None
    """Error that aborted the task, if any"""

    @property
    def success(self) -> bool:
        """True if the task ran to completion without any error."""
        return self.fatal_error is None and not self.errors

    @property
    def stats(self) -> dict:
        """Counts per category, for summaries and JSON output."""
        return {
            "copied": len(self.copied),
            "changed": len(self.changed),
            "excluded": len(self.excluded),
            "unchanged": self.unchanged,
            "deleted": len(self.deleted),
            "errors": len(self.errors),
            "bytes_copied": self.bytes_copied,
        }

    def to_dict(self) -> dict:
        """Convert the result to a dictionary for JSON output."""
        return {
            "task": self.task.to_dict(),
            "dry_run": self.dry_run,
            "stats": self.stats,
            "errors": list(self.errors),
            "no_files_found": self.no_files_found,
            "fatal_error": self.fatal_error,
            "success": self.success,
        }


@dataclass
class RunResult:
    """Results of all tasks of one run, in task order."""

    results: list[TaskResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if every task succeeded (vacuously true for zero tasks)."""
        return all(result.success for result in self.results)

    @property
    def failed(self) -> list[TaskResult]:
        """Results of tasks that were aborted or reported errors."""
        return [result for result in self.results if not result.success]

    @property
    def totals(self) -> dict:
        """Stats summed over all tasks."""
        totals = {
            "tasks": len(self.results),
            "copied": 0,
            "changed": 0,
            "excluded": 0,
            "unchanged": 0,
            "deleted": 0,
            "errors": 0,
            "bytes_copied": 0,
        }
        for result in self.results:
            for key, value in result.stats.items():
                totals[key] += value
        return totals
