"""Filesystem operations for copying and deleting sync entries."""

import logging
import shutil
from pathlib import Path

from ..exceptions import CopyError, DeleteError, TargetDirectoryError

logger = logging.getLogger(__name__)


class SyncOperations:
    """Copy, mkdir and delete operations used by the sync engine."""

    def ensure_parent(self, target_path: Path) -> None:
        """Create the parent directory of a target path (recursively).

        Args:
            target_path: File path whose parent must exist

        Raises:
            TargetDirectoryError: If the directory cannot be created
        """
        parent = target_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TargetDirectoryError(
                f"Error creating target directory {parent}: {e}", path=parent
            ) from e

    def copy_file(self, source_path: Path, target_path: Path) -> int:
        """Copy a file, overwriting the target if it exists.

        Content and permission bits are copied. The target's parent
        directory must already exist.

        Args:
            source_path: Regular file to copy
            target_path: Destination file path

        Returns:
            Number of bytes copied

        Raises:
            CopyError: If the copy fails
        """
        try:
            shutil.copy(source_path, target_path)
            size = target_path.stat().st_size
        except OSError as e:
            raise CopyError(
                f"Error copying {source_path} to {target_path}: {e}",
                path=source_path,
            ) from e

        logger.debug(f"Copied {size} bytes: {source_path} -> {target_path}")
        return size

    def delete_entry(self, path: Path) -> None:
        """Delete a target entry.

        Regular files are unlinked. Anything else is assumed to be a
        directory and removed recursively.

        Args:
            path: Entry to delete

        Raises:
            DeleteError: If the deletion fails
        """
        try:
            if path.is_file():
                path.unlink()
            else:
                shutil.rmtree(path)
        except OSError as e:
            raise DeleteError(f"Error deleting {path}: {e}", path=path) from e

        logger.debug(f"Deleted {path}")
