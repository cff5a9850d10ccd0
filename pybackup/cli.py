"""CLI interface for pybackup."""

import logging
from pathlib import Path
from typing import Any

import click

from .exceptions import SyncConfigError
from .output import OutputFormatter
from .sync import (
    CopyMode,
    SyncEngine,
    SyncTask,
    TaskRunner,
    load_tasks_from_toml,
    resolve_config_path,
)
from .sync.results import RunResult
from .utils import DEFAULT_CONFIG_FILE, format_size

logger = logging.getLogger(__name__)


def _load_tasks(ctx: Any, config_path: str) -> tuple[Path, list[SyncTask]]:
    """Resolve and load the config file, exiting on failure.

    Args:
        ctx: Click context
        config_path: Config path as given on the command line

    Returns:
        Tuple of (resolved config path, tasks)
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        path = resolve_config_path(config_path)
        tasks = load_tasks_from_toml(path)
    except SyncConfigError as e:
        out.error(e.message)
        ctx.exit(1)
    return path, tasks


def _select_tasks(
    ctx: Any, tasks: list[SyncTask], names: tuple[str, ...]
) -> list[SyncTask]:
    """Keep only the tasks named on the command line (in config order).

    Args:
        ctx: Click context
        tasks: All configured tasks
        names: Task names to keep; empty keeps every task

    Returns:
        Selected tasks
    """
    if not names:
        return tasks

    out: OutputFormatter = ctx.obj["out"]
    known = {task.name for task in tasks if task.name}
    missing = [name for name in names if name not in known]
    if missing:
        out.error(f"Unknown task name(s): {', '.join(missing)}")
        ctx.exit(1)

    return [task for task in tasks if task.name in names]


def _report_run(out: OutputFormatter, run_result: RunResult, dry_run: bool) -> None:
    """Print the overall outcome of a run.

    Args:
        out: Output formatter for messages
        run_result: Result of all tasks
        dry_run: Whether this was a dry run
    """
    if out.json_output:
        out.output_json(
            {
                "success": run_result.success,
                "dry_run": dry_run,
                "totals": run_result.totals,
                "tasks": [result.to_dict() for result in run_result.results],
            }
        )
        return

    totals = run_result.totals
    out.print_summary(
        "Dry Run Summary" if dry_run else "Backup Summary",
        [
            ("Tasks", str(totals["tasks"])),
            ("Copied", f"{totals['copied']} ({format_size(totals['bytes_copied'])})"),
            ("Changed", str(totals["changed"])),
            ("Unchanged", str(totals["unchanged"])),
            ("Excluded", str(totals["excluded"])),
            ("Deleted", str(totals["deleted"])),
            ("Errors", str(totals["errors"])),
        ],
    )

    if run_result.success:
        prefix = "Dry run" if dry_run else "Backup"
        out.success(f"{prefix} finished without errors")
        return

    for result in run_result.failed:
        if result.fatal_error:
            out.error(f"Task {result.task.label} aborted: {result.fatal_error}")
        else:
            out.warning(
                f"Task {result.task.label} finished with "
                f"{len(result.errors)} error(s)"
            )


def _run_tasks(ctx: Any, tasks: list[SyncTask], dry_run: bool) -> None:
    """Run tasks with the sync engine and exit non-zero on failure."""
    out: OutputFormatter = ctx.obj["out"]

    # Per-file messages are suppressed when the result is printed as JSON
    engine_out = OutputFormatter(
        json_output=out.json_output, quiet=out.quiet or out.json_output
    )
    runner = TaskRunner(SyncEngine(output=engine_out))

    try:
        run_result = runner.run(tasks, dry_run=dry_run)
    except KeyboardInterrupt:
        out.warning("\nBackup cancelled by user")
        ctx.exit(130)
        return

    _report_run(out, run_result, dry_run)

    if not run_result.success:
        ctx.exit(1)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output results in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pybackup")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """PyBackup - One-way directory backup driven by a TOML task list."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pybackup").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Config file path (\".toml\" is appended if the path does not exist)",
)
@click.option(
    "--task",
    "-t",
    "task_names",
    multiple=True,
    help="Only run the task with this name (repeatable)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be copied/deleted without doing it",
)
@click.pass_context
def run(
    ctx: Any, config_path: str, task_names: tuple[str, ...], dry_run: bool
) -> None:
    """Run the backup tasks from a config file.

    Tasks run in the order they are declared. A task that fails does not
    stop the following tasks; the exit code is 1 if any task failed.

    Examples:
        pybackup run                       # Uses ./config.toml
        pybackup run -c backup             # Uses ./backup or ./backup.toml
        pybackup run -c backup.toml -t docs --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]

    path, tasks = _load_tasks(ctx, config_path)
    tasks = _select_tasks(ctx, tasks, task_names)

    if not out.quiet and not out.json_output:
        out.info(f"Using config file: {path}")
        out.print("")

    _run_tasks(ctx, tasks, dry_run)


@main.command()
@click.argument("source", type=click.Path(file_okay=False, path_type=Path))
@click.argument("target", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    help="Skip source paths containing this text (repeatable)",
)
@click.option(
    "--remove-deleted",
    is_flag=True,
    help="Delete target files and folders that no longer exist in SOURCE",
)
@click.option(
    "--most-recent-only",
    is_flag=True,
    help="Only copy the most recently modified file directly inside SOURCE",
)
@click.option(
    "--skip-crc",
    is_flag=True,
    help="Treat existing target files as up to date without comparing content",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be copied/deleted without doing it",
)
@click.pass_context
def copy(
    ctx: Any,
    source: Path,
    target: Path,
    exclude: tuple[str, ...],
    remove_deleted: bool,
    most_recent_only: bool,
    skip_crc: bool,
    dry_run: bool,
) -> None:
    """Back up SOURCE into TARGET without a config file.

    Examples:
        pybackup copy ~/Documents /mnt/backup/Documents
        pybackup copy ./project /mnt/backup/project -e .git -e node_modules
        pybackup copy ~/dumps /mnt/backup/dumps --most-recent-only
    """
    task = SyncTask(
        source=source,
        target=target,
        exclude=list(exclude),
        remove_deleted=remove_deleted,
        mode=CopyMode.MOST_RECENT_ONLY if most_recent_only else CopyMode.FULL,
        skip_crc=skip_crc,
    )
    _run_tasks(ctx, [task], dry_run)


@main.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Config file path (\".toml\" is appended if the path does not exist)",
)
@click.pass_context
def tasks(ctx: Any, config_path: str) -> None:
    """List the tasks defined in a config file."""
    out: OutputFormatter = ctx.obj["out"]

    path, loaded = _load_tasks(ctx, config_path)

    if out.json_output:
        out.output_json({"config": str(path), "tasks": [t.to_dict() for t in loaded]})
        return

    if not loaded:
        out.info(f"No tasks defined in {path}")
        return

    table_data = []
    for index, task in enumerate(loaded, start=1):
        flags = []
        if task.remove_deleted:
            flags.append("remove deleted")
        if task.skip_crc:
            flags.append("skip crc")
        table_data.append(
            {
                "index": index,
                "name": task.name or "-",
                "source": task.source,
                "target": task.target,
                "mode": task.mode.value,
                "exclude": ", ".join(task.exclude) or "-",
                "options": ", ".join(flags) or "-",
            }
        )

    out.output_table(
        table_data,
        ["index", "name", "source", "target", "mode", "exclude", "options"],
        {
            "index": "#",
            "name": "Name",
            "source": "Source",
            "target": "Target",
            "mode": "Mode",
            "exclude": "Exclude",
            "options": "Options",
        },
        title=f"Tasks in {path}",
    )


if __name__ == "__main__":
    main()
