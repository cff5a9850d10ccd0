"""Exceptions raised by pybackup."""

from pathlib import Path
from typing import Optional, Union


class PyBackupError(Exception):
    """Base exception for all pybackup errors."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        """Initialize the error.

        Args:
            message: Human-readable description of the failure
            path: Filesystem path the failure relates to (if any)
        """
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None


class SyncConfigError(PyBackupError):
    """Config file is missing, unreadable or has an invalid shape."""


class SourceUnreadableError(PyBackupError):
    """A source directory could not be listed."""


class TargetDirectoryError(PyBackupError):
    """A target directory could not be created.

    This is the only per-file failure that aborts the current task.
    """


class CopyError(PyBackupError):
    """Copying a single file failed."""


class DeleteError(PyBackupError):
    """Deleting a target entry failed."""


class ChecksumError(PyBackupError):
    """A file could not be read while computing its checksum."""
