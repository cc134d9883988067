"""Console output using Rich.

Rendered results (extension cards, tables, panels) go to stdout.
Log lines (info, warnings, errors, debug) go to stderr so that
command output stays pipeable.
"""

from enum import IntEnum
from typing import Any, TYPE_CHECKING

import typer
from rich import box
from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

if TYPE_CHECKING:
    from pgext.core.exceptions import PgExtError


class Verbosity(IntEnum):
    """Console verbosity, raised by repeating --verbose."""
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


class Console:
    """pgext console: stdout for results, stderr for log lines.

    Warnings and errors are always shown. Info, step and success lines
    need NORMAL, verbose lines VERBOSE and debug lines DEBUG.
    """

    def __init__(self) -> None:
        self.verbosity = Verbosity.NORMAL
        self.dry_run = False
        self._build(no_color=False)

    def _build(self, no_color: bool) -> None:
        self._out = RichConsole(highlight=False, no_color=no_color)
        self._err = RichConsole(stderr=True, highlight=False, no_color=no_color)

    def configure(
        self,
        verbosity: int = Verbosity.NORMAL,
        dry_run: bool = False,
        no_color: bool = False,
    ) -> None:
        """Apply the options of the current invocation."""
        self.verbosity = Verbosity(min(max(verbosity, Verbosity.NORMAL), Verbosity.DEBUG))
        self.dry_run = dry_run
        self._build(no_color=no_color)

    def _log(self, level: Verbosity, prefix: str, message: str) -> None:
        if self.verbosity >= level:
            self._err.print(f"{prefix} {message}" if prefix else message)

    # Log lines (stderr)
    def info(self, message: str) -> None:
        self._log(Verbosity.NORMAL, "[green][INFO][/green]", message)

    def success(self, message: str) -> None:
        self._log(Verbosity.NORMAL, "[green][OK][/green]", message)

    def step(self, message: str) -> None:
        self._log(Verbosity.NORMAL, "[blue]->[/blue]", message)

    def warn(self, message: str) -> None:
        self._err.print(f"[yellow][WARN][/yellow] {message}")

    def error(self, message: str) -> None:
        self._err.print(f"[red][ERROR][/red] {message}")

    def hint(self, message: str) -> None:
        self._err.print(f"[cyan]Hint:[/cyan] {message}")

    def detail(self, message: str) -> None:
        self._err.print(f"  [dim]{message}[/dim]")

    def verbose(self, message: str) -> None:
        self._log(Verbosity.VERBOSE, "", f"[dim]{message}[/dim]")

    def debug(self, message: str) -> None:
        self._log(Verbosity.DEBUG, "[cyan][DEBUG][/cyan]", message)

    def dry_run_msg(self, message: str) -> None:
        """Report a command skipped because of --dry-run."""
        if self.dry_run:
            self._err.print(f"[blue][DRY-RUN][/blue] Would: {message}")

    # Results (stdout)
    def print(self, message: Any = "", **kwargs: Any) -> None:
        """Print a message or Rich renderable."""
        self._out.print(message, **kwargs)

    def text(self, content: str) -> None:
        """Print pre-formatted text as is: no markup, highlighting or wrapping."""
        self._out.print(content, markup=False, highlight=False, soft_wrap=True)

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        box_style: box.Box = box.ROUNDED,
    ) -> None:
        """Print rows of strings as a table."""
        table = Table(title=title, box=box_style)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self._out.print(table)

    def yaml(self, yaml_text: str, title: str = "Configuration") -> None:
        """Print YAML in a panel."""
        syntax = Syntax(yaml_text, "yaml", theme="monokai", line_numbers=False)
        self._out.print(Panel(syntax, title=title, border_style="cyan"))

    def summary(self, title: str, items: dict[str, Any]) -> None:
        """Print key/value pairs in a panel; booleans show as Yes/No, None as -."""
        lines = []
        for key, value in items.items():
            if isinstance(value, bool):
                shown = "[green]Yes[/green]" if value else "[red]No[/red]"
            elif value is None:
                shown = "[dim]-[/dim]"
            else:
                shown = str(value)
            lines.append(f"[bold]{key}:[/bold] {shown}")

        self._out.print(Panel("\n".join(lines), title=title, border_style="blue"))


# Global console instance
console = Console()


def handle_error(error: "PgExtError") -> None:
    """Report a PgExtError and exit with its exit code."""
    console.error(error.message)
    for detail in error.details:
        console.detail(detail)
    if error.hint:
        console.hint(error.hint)

    raise typer.Exit(error.exit_code)
