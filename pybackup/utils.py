"""Utility functions for pybackup."""

from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for file operations
# =============================================================================

# Read size used when streaming a file into the checksum (1 MB)
DEFAULT_CHECKSUM_CHUNK_SIZE: int = 1024 * 1024

# Config file used when none is given on the command line
DEFAULT_CONFIG_FILE: str = "config.toml"

# Suffix tried when the config path does not exist as given
CONFIG_SUFFIX: str = ".toml"


# =============================================================================
# Timestamp formatting utilities
# =============================================================================


def format_timestamp(mtime: Optional[float]) -> str:
    """Format a Unix timestamp as local time.

    Args:
        mtime: Unix timestamp (e.g., from ``os.stat().st_mtime``)

    Returns:
        Formatted string (e.g., "2025-01-15 10:30:00") or "-" when missing
    """
    if mtime is None:
        return "-"
    return datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")

    Examples:
        >>> format_size(256)
        '256 B'
        >>> format_size(1536)
        '1.5 KB'
        >>> format_size(3 * 1024 * 1024)
        '3.0 MB'
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
