"""Exclude pattern matching for source paths."""

from collections.abc import Sequence
from pathlib import Path
from typing import Optional, Union


def is_excluded(path: Union[str, Path], patterns: Sequence[str]) -> bool:
    """Check whether a path contains any exclude pattern.

    Patterns are plain substrings matched anywhere in the path's string
    form, not globs or regular expressions, so ``"tmp"`` also matches
    ``/data/attempts/log.txt``.

    Args:
        path: Path to check (the full source path, not the relative one)
        patterns: Substrings to look for

    Returns:
        True if at least one pattern occurs in the path

    Examples:
        >>> is_excluded("/data/.git/config", [".git"])
        True
        >>> is_excluded("/data/notes.txt", [".git", "node_modules"])
        False
        >>> is_excluded("/data/notes.txt", [])
        False
    """
    path_str = str(path)
    return any(pattern in path_str for pattern in patterns)


class PathMatcher:
    """Holds a task's exclude patterns."""

    def __init__(self, patterns: Optional[Sequence[str]] = None):
        """Initialize path matcher.

        Args:
            patterns: Substrings that exclude a path
        """
        self.patterns = list(patterns or [])

    def is_excluded(self, path: Union[str, Path]) -> bool:
        """Check whether a path is excluded."""
        return is_excluded(path, self.patterns)
