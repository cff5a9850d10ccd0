"""Loading sync tasks from TOML config files."""

import logging
from pathlib import Path
from typing import Any, Union

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Fallback for older Python

from ..exceptions import SyncConfigError
from ..utils import CONFIG_SUFFIX
from .task import SyncTask

logger = logging.getLogger(__name__)


def resolve_config_path(path: Union[str, Path]) -> Path:
    """Find the config file, trying a ``.toml`` suffix if needed.

    Args:
        path: Config path as given by the user (e.g. "config" or "config.toml")

    Returns:
        Existing config file path

    Raises:
        SyncConfigError: If neither the path nor its ``.toml`` variant exists
    """
    path = Path(path).expanduser()
    if path.is_file():
        return path

    # "backup.v2" -> "backup.v2.toml", not "backup.toml"
    if path.name.endswith(CONFIG_SUFFIX):
        with_suffix = path
    else:
        with_suffix = path.with_name(path.name + CONFIG_SUFFIX)
    if with_suffix.is_file():
        return with_suffix

    raise SyncConfigError(f"Config file not found: {path}, {with_suffix}", path=path)


def parse_tasks(data: dict[str, Any]) -> list[SyncTask]:
    """Build tasks from a parsed config document.

    Args:
        data: Parsed TOML document; tasks are read from its ``task`` array

    Returns:
        Tasks in declared order (empty if there is no ``task`` key)

    Raises:
        SyncConfigError: If the document has an invalid shape
    """
    unknown = set(data) - {"task"}
    if unknown:
        raise SyncConfigError(
            f"Unknown top-level key(s): {', '.join(sorted(unknown))}"
        )

    raw_tasks = data.get("task", [])
    if not isinstance(raw_tasks, list):
        raise SyncConfigError("'task' must be an array of tables ([[task]])")

    tasks: list[SyncTask] = []
    for index, raw_task in enumerate(raw_tasks, start=1):
        if not isinstance(raw_task, dict):
            raise SyncConfigError(f"Task {index}: must be a table")
        try:
            tasks.append(SyncTask.from_dict(raw_task))
        except ValueError as e:
            raise SyncConfigError(f"Task {index}: {e}") from e

    return tasks


def load_tasks_from_toml(path: Union[str, Path]) -> list[SyncTask]:
    """Load sync tasks from a TOML config file.

    Example config::

        [[task]]
        source = "/home/user/Documents"
        target = "/mnt/backup/Documents"
        exclude = [".git", "node_modules"]
        remove_deleted = true

        [[task]]
        source = "/home/user/dumps"
        target = "/mnt/backup/dumps"
        most_recent_only = true

    Args:
        path: Path to the config file

    Returns:
        Tasks in declared order

    Raises:
        SyncConfigError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise SyncConfigError(f"Config file not found: {path}", path=path) from e
    except OSError as e:
        raise SyncConfigError(f"Error reading config {path}: {e}", path=path) from e
    except tomllib.TOMLDecodeError as e:
        raise SyncConfigError(f"Error parsing config {path}: {e}", path=path) from e

    tasks = parse_tasks(data)
    logger.debug(f"Loaded {len(tasks)} task(s) from {path}")
    return tasks
