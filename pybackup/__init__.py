"""pybackup - one-way directory backup driven by a TOML task list."""

from .exceptions import (
    ChecksumError,
    CopyError,
    DeleteError,
    PyBackupError,
    SourceUnreadableError,
    SyncConfigError,
    TargetDirectoryError,
)
from .sync import SyncEngine, SyncTask, TaskRunner, load_tasks_from_toml
from .utils import format_size

__all__ = [
    "SyncEngine",
    "SyncTask",
    "TaskRunner",
    "load_tasks_from_toml",
    "PyBackupError",
    "SyncConfigError",
    "SourceUnreadableError",
    "TargetDirectoryError",
    "CopyError",
    "DeleteError",
    "ChecksumError",
    "format_size",
]
