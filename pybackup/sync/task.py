"""Sync task definition: one source -> target backup directive."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .modes import CopyMode

_KNOWN_KEYS = {
    "name",
    "source",
    "target",
    "exclude",
    "remove_deleted",
    "most_recent_only",
    "skip_crc",
    "mode",
}


@dataclass
class SyncTask:
    """A one-way synchronization from a source to a target directory.

    Examples:
        >>> task = SyncTask(source="/data/docs", target="/backup/docs")
        >>> task.mode
        <CopyMode.FULL: 'full'>
        >>> task.exclude
        []
    """

    source: Path
    """Root directory to read from"""

    target: Path
    """Root directory to write to"""

    exclude: list[str] = field(default_factory=list)
    """Substrings; a source path containing any of them is not copied"""

    remove_deleted: bool = False
    """Delete target entries that no longer exist in the source"""

    mode: CopyMode = CopyMode.FULL
    """Whole tree or only the most recently modified file"""

    skip_crc: bool = False
    """Treat an existing target file as up to date without comparing content"""

    name: Optional[str] = None
    """Optional label used in output and for selecting tasks"""

    def __post_init__(self) -> None:
        """Normalize field types."""
        if isinstance(self.source, str):
            self.source = Path(self.source)
        if isinstance(self.target, str):
            self.target = Path(self.target)
        self.source = self.source.expanduser()
        self.target = self.target.expanduser()

        if isinstance(self.mode, str) and not isinstance(self.mode, CopyMode):
            self.mode = CopyMode.from_string(self.mode)

        self.exclude = list(self.exclude or [])

    @property
    def most_recent_only(self) -> bool:
        """Whether only the newest source file is considered."""
        return self.mode == CopyMode.MOST_RECENT_ONLY

    @property
    def label(self) -> str:
        """Display label: the name if set, else "source -> target"."""
        if self.name:
            return self.name
        return f"{self.source} -> {self.target}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncTask":
        """Create a task from a parsed config table.

        Missing optional keys default to ``False`` / empty list.

        Args:
            data: Mapping with keys source, target and optionally exclude,
                remove_deleted, most_recent_only, skip_crc, mode, name

        Returns:
            SyncTask instance

        Raises:
            ValueError: If a key is unknown, missing or has the wrong type
        """
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown task key(s): {', '.join(sorted(unknown))}")

        for key in ("source", "target"):
            if key not in data:
                raise ValueError(f"Missing required key: {key}")
            if not isinstance(data[key], str) or not data[key]:
                raise ValueError(f"'{key}' must be a non-empty string")

        exclude = data.get("exclude", [])
        if not isinstance(exclude, list) or not all(
            isinstance(pattern, str) for pattern in exclude
        ):
            raise ValueError("'exclude' must be a list of strings")

        for key in ("remove_deleted", "most_recent_only", "skip_crc"):
            if key in data and not isinstance(data[key], bool):
                raise ValueError(f"'{key}' must be true or false")

        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ValueError("'name' must be a string")

        mode = cls._mode_from_dict(data)

        return cls(
            source=Path(data["source"]),
            target=Path(data["target"]),
            exclude=exclude,
            remove_deleted=data.get("remove_deleted", False),
            mode=mode,
            skip_crc=data.get("skip_crc", False),
            name=name,
        )

    @staticmethod
    def _mode_from_dict(data: dict[str, Any]) -> CopyMode:
        """Resolve the copy mode from ``mode`` and/or ``most_recent_only``."""
        flag = data.get("most_recent_only")

        if "mode" not in data:
            return CopyMode.MOST_RECENT_ONLY if flag else CopyMode.FULL

        if not isinstance(data["mode"], str):
            raise ValueError("'mode' must be a string")
        mode = CopyMode.from_string(data["mode"])

        if flag is not None and flag != (mode == CopyMode.MOST_RECENT_ONLY):
            raise ValueError(
                f"'most_recent_only = {str(flag).lower()}' contradicts "
                f"'mode = \"{mode.value}\"'"
            )
        return mode

    def to_dict(self) -> dict[str, Any]:
        """Convert the task to a dictionary for display or JSON output."""
        return {
            "name": self.name,
            "source": str(self.source),
            "target": str(self.target),
            "exclude": list(self.exclude),
            "remove_deleted": self.remove_deleted,
            "mode": self.mode.value,
            "skip_crc": self.skip_crc,
        }
