"""Console output formatting for the pybackup CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text


class OutputFormatter:
    """Formats messages for the terminal.

    Informational messages are suppressed in quiet mode; warnings and
    errors always go to stderr.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Whether structured results should be printed as JSON
            quiet: Whether to suppress non-essential output
            console: Console for regular output (defaults to stdout)
            err_console: Console for warnings and errors (defaults to stderr)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        """Print a plain message."""
        if self.quiet:
            return
        self.console.print(message, markup=False, soft_wrap=True)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self.quiet:
            return
        self.console.print(message, markup=False, soft_wrap=True)

    def success(self, message: str) -> None:
        """Print a success message in green."""
        if self.quiet:
            return
        self.console.print(message, style="green", markup=False, soft_wrap=True)

    def warning(self, message: str) -> None:
        """Print a warning message in yellow (stderr)."""
        self.err_console.print(
            message, style="yellow", markup=False, soft_wrap=True
        )

    def error(self, message: str) -> None:
        """Print an error message in red (stderr)."""
        self.err_console.print(
            message, style="bold red", markup=False, soft_wrap=True
        )

    def output_json(self, data: Any) -> None:
        """Print data as JSON, regardless of quiet mode."""
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            rows: List of (label, value) pairs
        """
        if self.quiet:
            return

        table = Table(title=title, show_header=False, title_justify="left")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for label, value in rows:
            table.add_row(label, value)
        self.console.print(table)

    def output_table(
        self,
        data: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
        title: Optional[str] = None,
    ) -> None:
        """Print rows of dictionaries as a table.

        Args:
            data: One dictionary per row
            columns: Keys to show, in column order
            headers: Column header per key (defaults to the key itself)
            title: Optional table title
        """
        if self.quiet:
            return

        headers = headers or {}
        table = Table(title=title, title_justify="left")
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in data:
            table.add_row(*(Text(str(row.get(column, ""))) for column in columns))
        self.console.print(table)
