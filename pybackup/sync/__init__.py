"""Sync engine for pybackup - one-way directory backup."""

from .comparator import CopyAction, CopyDecision, FileComparator, crc32_file
from .config import load_tasks_from_toml, parse_tasks, resolve_config_path
from .engine import SyncEngine
from .matcher import PathMatcher, is_excluded
from .modes import CopyMode
from .operations import SyncOperations
from .results import RunResult, TaskResult
from .runner import TaskRunner
from .scanner import DirectoryScanner, LocalEntry
from .task import SyncTask

__all__ = [
    "SyncEngine",
    "TaskRunner",
    "SyncTask",
    "CopyMode",
    "SyncOperations",
    "TaskResult",
    "RunResult",
    "load_tasks_from_toml",
    "parse_tasks",
    "resolve_config_path",
    "DirectoryScanner",
    "LocalEntry",
    "FileComparator",
    "CopyAction",
    "CopyDecision",
    "crc32_file",
    "PathMatcher",
    "is_excluded",
]
