"""Run a list of sync tasks in order."""

import logging
from collections.abc import Sequence
from typing import Optional

from ..exceptions import PyBackupError
from ..output import OutputFormatter
from .engine import SyncEngine
from .results import RunResult, TaskResult
from .task import SyncTask

logger = logging.getLogger(__name__)


class TaskRunner:
    """Runs tasks one after another, isolating their failures.

    A task that aborts never prevents later tasks from running, and the
    runner never exits the process: callers inspect the RunResult.
    """

    def __init__(
        self,
        engine: Optional[SyncEngine] = None,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize task runner.

        Args:
            engine: Sync engine used for every task
            output: Output formatter (used when no engine is given)
        """
        self.engine = engine or SyncEngine(output=output)

    @property
    def output(self) -> OutputFormatter:
        """Output formatter shared with the engine."""
        return self.engine.output

    def run(self, tasks: Sequence[SyncTask], dry_run: bool = False) -> RunResult:
        """Run all tasks in declared order.

        Args:
            tasks: Tasks to run
            dry_run: If True, only report what would be done

        Returns:
            RunResult with one TaskResult per task
        """
        run_result = RunResult()

        for index, task in enumerate(tasks, start=1):
            logger.debug(f"Starting task {index}/{len(tasks)}: {task.label}")
            run_result.results.append(self._run_task(task, dry_run))

        logger.debug(f"Finished {len(tasks)} task(s): {run_result.totals}")
        return run_result

    def _run_task(self, task: SyncTask, dry_run: bool) -> TaskResult:
        """Run one task, turning an escaping error into a failed result."""
        try:
            return self.engine.sync_task(task, dry_run=dry_run)
        except (PyBackupError, OSError) as e:
            message = e.message if isinstance(e, PyBackupError) else str(e)
            logger.debug(f"Task {task.label} failed", exc_info=True)
            self.output.error(f"Task {task.label} failed: {message}")
            return TaskResult(task=task, dry_run=dry_run, fatal_error=message)
