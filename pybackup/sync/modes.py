"""Copy modes selecting which source files a task considers."""

from enum import Enum


class CopyMode(str, Enum):
    """Which source entries the copy phase looks at."""

    FULL = "full"
    """Walk the whole source tree recursively"""

    MOST_RECENT_ONLY = "most_recent_only"
    """Only the newest regular file directly inside the source directory"""

    @classmethod
    def from_string(cls, value: str) -> "CopyMode":
        """Parse a copy mode from its name or abbreviation.

        Args:
            value: Mode name ("full", "most_recent_only") or
                abbreviation ("f", "mro"); dashes are accepted for underscores

        Returns:
            Matching CopyMode

        Raises:
            ValueError: If the value names no mode

        Examples:
            >>> CopyMode.from_string("full")
            <CopyMode.FULL: 'full'>
            >>> CopyMode.from_string("most-recent-only")
            <CopyMode.MOST_RECENT_ONLY: 'most_recent_only'>
        """
        normalized = value.strip().lower().replace("-", "_")
        abbreviations = {
            "f": cls.FULL,
            "mro": cls.MOST_RECENT_ONLY,
            "most_recent": cls.MOST_RECENT_ONLY,
        }
        if normalized in abbreviations:
            return abbreviations[normalized]
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ValueError(
                f"Invalid copy mode: {value!r} (expected one of: {valid})"
            ) from None

    @property
    def walks_tree(self) -> bool:
        """Whether the copy phase walks the source tree recursively."""
        return self == CopyMode.FULL
