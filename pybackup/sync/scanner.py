"""Directory scanning utilities for sync operations."""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..exceptions import SourceUnreadableError

logger = logging.getLogger(__name__)


@dataclass
class LocalEntry:
    """Represents a filesystem entry found while scanning."""

    path: Path
    """Path of the entry (the scanned root joined with its relative path)"""

    is_file: bool
    """Whether the entry is a regular file (symlinks are not followed)"""

    is_dir: bool
    """Whether the entry is a directory (symlinks are not followed)"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    size: int
    """Size in bytes"""

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> "LocalEntry":
        """Create LocalEntry from an ``os.scandir`` entry.

        Args:
            entry: Directory entry

        Returns:
            LocalEntry instance
        """
        stat = entry.stat(follow_symlinks=False)
        return cls(
            path=Path(entry.path),
            is_file=entry.is_file(follow_symlinks=False),
            is_dir=entry.is_dir(follow_symlinks=False),
            mtime=stat.st_mtime,
            size=stat.st_size,
        )

    def relative_to(self, root: Path) -> Path:
        """Path of this entry relative to the scanned root."""
        return self.path.relative_to(root)


class DirectoryScanner:
    """Walks directory trees and lists directory contents.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> for entry in scanner.walk(Path("/sync/folder")):
        ...     print(entry.path)
    """

    def __init__(self, on_error: Optional[Callable[[OSError], None]] = None):
        """Initialize directory scanner.

        Args:
            on_error: Called with the OSError when a directory below the
                root cannot be listed; the walk continues afterwards
        """
        self.on_error = on_error

    def walk(self, root: Path) -> Iterator[LocalEntry]:
        """Lazily walk every entry below ``root``.

        Directories are yielded before their contents. The root itself is
        not yielded, and a missing root produces an empty sequence.
        Symlinked directories are reported but not descended into.
        The consumer may delete a yielded directory; the walk then skips it.

        Args:
            root: Directory to walk

        Yields:
            LocalEntry for each file, directory or other entry
        """
        pending = [root]
        while pending:
            directory = pending.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except FileNotFoundError:
                # Missing root, or a directory removed after it was yielded
                logger.debug(f"Skipping missing directory: {directory}")
                continue
            except NotADirectoryError:
                logger.debug(f"Skipping non-directory: {directory}")
                continue
            except OSError as e:
                self._report(e)
                continue

            subdirs: list[Path] = []
            for dir_entry in entries:
                try:
                    entry = LocalEntry.from_dir_entry(dir_entry)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    self._report(e)
                    continue

                yield entry

                if entry.is_dir:
                    subdirs.append(entry.path)

            # Reversed so the stack pops them in name order
            pending.extend(reversed(subdirs))

    def list_files(self, directory: Path) -> list[LocalEntry]:
        """List regular files directly inside a directory (not recursive).

        A file that disappears between listing and ``stat`` is skipped; any
        other ``stat`` failure is passed to ``on_error``.

        Args:
            directory: Directory to list

        Returns:
            Regular files sorted by name; empty if the directory is missing

        Raises:
            SourceUnreadableError: If the directory exists but cannot be listed
        """
        try:
            with os.scandir(directory) as it:
                dir_entries = [e for e in it if e.is_file(follow_symlinks=False)]
        except FileNotFoundError:
            logger.debug(f"Directory does not exist: {directory}")
            return []
        except OSError as e:
            raise SourceUnreadableError(
                f"Error listing {directory}: {e}", path=directory
            ) from e

        files: list[LocalEntry] = []
        for dir_entry in dir_entries:
            try:
                files.append(LocalEntry.from_dir_entry(dir_entry))
            except FileNotFoundError:
                logger.debug(f"Skipping vanished file: {dir_entry.path}")
                continue
            except OSError as e:
                self._report(e)
                continue

        files.sort(key=lambda f: f.path.name)
        return files

    def _report(self, error: OSError) -> None:
        """Pass a listing error to the callback, or log it."""
        if self.on_error is not None:
            self.on_error(error)
        else:
            logger.warning(f"Error listing {error.filename}: {error.strerror}")
