"""File comparison logic for sync operations."""

import logging
import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..exceptions import ChecksumError
from ..utils import DEFAULT_CHECKSUM_CHUNK_SIZE

logger = logging.getLogger(__name__)


class CopyAction(str, Enum):
    """Actions that can be taken for a source file."""

    COPY = "copy"
    """Copy source file to target"""

    SKIP = "skip"
    """Skip file (target is up to date)"""


@dataclass
class CopyDecision:
    """Represents a decision about whether to copy a file."""

    action: CopyAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    create_parent: bool = False
    """Whether the target's parent directory may need to be created first"""

    @property
    def needs_copy(self) -> bool:
        """Whether the file must be copied."""
        return self.action == CopyAction.COPY


def crc32_file(path: Path, chunk_size: int = DEFAULT_CHECKSUM_CHUNK_SIZE) -> int:
    """Compute the CRC-32 checksum of a file's full content.

    Args:
        path: File to read
        chunk_size: Number of bytes read per iteration

    Returns:
        Unsigned 32-bit checksum

    Raises:
        ChecksumError: If the file cannot be read
    """
    checksum = 0
    try:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                checksum = zlib.crc32(chunk, checksum)
    except OSError as e:
        raise ChecksumError(f"Error reading {path}: {e}", path=path) from e
    return checksum


class FileComparator:
    """Decides whether a source file must be copied over its target."""

    def __init__(self, chunk_size: int = DEFAULT_CHECKSUM_CHUNK_SIZE):
        """Initialize file comparator.

        Args:
            chunk_size: Read size used when computing checksums
        """
        self.chunk_size = chunk_size

    def compare(
        self, source_path: Path, target_path: Path, skip_crc: bool = False
    ) -> CopyDecision:
        """Compare a source file with its target location.

        Args:
            source_path: Regular file to copy from
            target_path: Where the file would be copied to
            skip_crc: Treat an existing target as up to date without reading it

        Returns:
            CopyDecision for this file

        Raises:
            ChecksumError: If either file cannot be read for comparison, or
                the target cannot be checked for existence
        """
        try:
            target_exists = target_path.exists()
        except OSError as e:
            raise ChecksumError(
                f"Error checking {target_path}: {e}", path=target_path
            ) from e

        if not target_exists:
            return CopyDecision(
                action=CopyAction.COPY,
                reason="New file",
                create_parent=True,
            )

        # Existence alone counts as up to date; stale content goes unnoticed
        if skip_crc:
            return CopyDecision(
                action=CopyAction.SKIP,
                reason="Target exists (checksum skipped)",
            )

        source_crc = crc32_file(source_path, self.chunk_size)
        target_crc = crc32_file(target_path, self.chunk_size)
        logger.debug(
            f"CRC32 {source_path}: {source_crc:08x}, {target_path}: {target_crc:08x}"
        )

        if source_crc == target_crc:
            return CopyDecision(
                action=CopyAction.SKIP,
                reason="File matches on source and target",
            )

        return CopyDecision(action=CopyAction.COPY, reason="Checksums differ")

    def needs_copy(
        self, source_path: Path, target_path: Path, skip_crc: bool = False
    ) -> bool:
        """Check whether a source file must be (re)copied.

        Args:
            source_path: Regular file to copy from
            target_path: Where the file would be copied to
            skip_crc: Treat an existing target as up to date without reading it

        Returns:
            True if the file must be copied
        """
        return self.compare(source_path, target_path, skip_crc).needs_copy
