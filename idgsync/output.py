"""Console output helpers built on rich."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Formats user-facing output for the CLI.

    Plain text goes to stdout, warnings and errors to stderr. In quiet mode
    only warnings and errors are printed; in JSON mode only structured
    output is.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False, soft_wrap=True)
        self.err_console = Console(stderr=True, highlight=False, soft_wrap=True)

    def _silent(self) -> bool:
        return self.quiet or self.json_output

    def print(self, message: str = "") -> None:
        """Print a plain line of text."""
        if self._silent():
            return
        self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if self._silent():
            return
        self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if self._silent():
            return
        self.console.print(f"✓ {message}", style="green", markup=False)

    def warning(self, message: str) -> None:
        self.err_console.print(f"Warning: {message}", style="yellow", markup=False)

    def error(self, message: str) -> None:
        self.err_console.print(f"Error: {message}", style="bold red", markup=False)

    def progress_message(self, message: str) -> None:
        """Print a dimmed progress line."""
        if self._silent():
            return
        self.console.print(message, style="dim", markup=False)

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON."""
        self.console.print_json(json.dumps(data, default=str))

    def output_table(
        self,
        data: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Print a list of rows as a table, or as JSON in JSON mode.

        Args:
            data: Rows keyed by column name
            columns: Column keys in display order
            headers: Optional display names for the columns
        """
        if self.json_output:
            self.output_json(data)
            return
        if self.quiet:
            return

        headers = headers or {}
        table = Table(show_header=True, header_style="bold")
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in data:
            table.add_row(*(str(row.get(column, "")) for column in columns))
        self.console.print(table)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled block of label/value pairs."""
        if self.json_output:
            self.output_json({label: value for label, value in items})
            return
        if self.quiet:
            return

        self.console.print()
        self.console.print(f"── {title} ──", style="bold", markup=False)
        for label, value in items:
            self.console.print(f"  {label}: {value}", markup=False)
