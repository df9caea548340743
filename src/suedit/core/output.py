"""Console output for suedit, built on Rich.

Two streams are kept apart:
- stdout: progress lines, tables, the staging path and the prompt
- stderr: warnings, errors, hints and error details

The staging path is written with `out()`, which bypasses markup,
wrapping and verbosity so that scripts can capture it verbatim.
"""

from enum import IntEnum
from typing import Any

from rich import box
from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table


class Verbosity(IntEnum):
    """Output verbosity levels."""
    QUIET = 0    # Errors only
    NORMAL = 1   # Standard output
    VERBOSE = 2  # Additional details
    DEBUG = 3    # Everything


# tag, style, minimum verbosity
_STDOUT_LEVELS = {
    "info": ("[INFO]", "green", Verbosity.NORMAL),
    "success": ("[OK]", "green", Verbosity.NORMAL),
    "step": ("->", "blue", Verbosity.NORMAL),
    "debug": ("[DEBUG]", "cyan", Verbosity.DEBUG),
}

_STDERR_LEVELS = {
    "warn": ("[WARN]", "yellow"),
    "error": ("[ERROR]", "red"),
    "hint": ("Hint:", "cyan"),
}


class Console:
    """Verbosity-aware wrapper around a stdout and a stderr Rich console."""

    def __init__(self) -> None:
        self._build(no_color=False)
        self.verbosity = Verbosity.NORMAL
        self.dry_run = False
        self.no_color = False

    def _build(self, no_color: bool) -> None:
        self._console = RichConsole(highlight=False, no_color=no_color)
        self._err_console = RichConsole(stderr=True, highlight=False, no_color=no_color)

    def configure(
        self,
        verbosity: int = 1,
        dry_run: bool = False,
        no_color: bool = False,
    ) -> None:
        """Apply CLI flags to the console."""
        self.verbosity = Verbosity(max(Verbosity.QUIET, min(verbosity, Verbosity.DEBUG)))
        self.dry_run = dry_run
        if no_color != self.no_color:
            self._build(no_color=no_color)
        self.no_color = no_color

    def _emit(self, level: str, message: str) -> None:
        tag, style, minimum = _STDOUT_LEVELS[level]
        if self.verbosity >= minimum:
            self._console.print(f"[{style}]{tag}[/{style}] {message}")

    def _emit_err(self, level: str, message: str) -> None:
        tag, style = _STDERR_LEVELS[level]
        self._err_console.print(f"[{style}]{tag}[/{style}] {message}")

    # stdout
    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def step(self, message: str) -> None:
        self._emit("step", message)

    def debug(self, message: str) -> None:
        self._emit("debug", message)

    def verbose(self, message: str) -> None:
        """Dimmed detail shown with -v."""
        if self.verbosity >= Verbosity.VERBOSE:
            self._console.print(f"[dim]{message}[/dim]")

    def dry_run_msg(self, message: str) -> None:
        """Describe an action skipped by --dry-run."""
        if self.dry_run:
            self._console.print(f"[blue][DRY-RUN][/blue] Would: {message}")

    def out(self, text: str) -> None:
        """Write text as one raw stdout line, regardless of verbosity."""
        self._console.out(text, highlight=False)

    def print(self, message: Any = "", **kwargs: Any) -> None:
        """Print a message or Rich renderable."""
        self._console.print(message, **kwargs)

    # stderr
    def warn(self, message: str) -> None:
        self._emit_err("warn", message)

    def error(self, message: str) -> None:
        self._emit_err("error", message)

    def hint(self, message: str) -> None:
        self._emit_err("hint", message)

    def detail(self, message: str) -> None:
        """Indented line under an error."""
        self._err_console.print(f"  [dim]{message}[/dim]")

    # Structured output
    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        box_style: box.Box = box.ROUNDED,
    ) -> None:
        """Print rows as a table."""
        table = Table(title=title, box=box_style)
        for col in columns:
            table.add_column(col)
        for row in rows:
            table.add_row(*row)
        self._console.print(table)

    def yaml(self, yaml_text: str, title: str = "Configuration") -> None:
        """Print YAML with syntax highlighting."""
        syntax = Syntax(yaml_text, "yaml", theme="monokai", line_numbers=False)
        self._console.print(Panel(syntax, title=title, border_style="cyan"))

    def summary(self, title: str, items: dict[str, Any]) -> None:
        """Print key/value pairs in a panel; booleans render as Yes/No."""
        lines = []
        for key, value in items.items():
            if isinstance(value, bool):
                value = "[green]Yes[/green]" if value else "[red]No[/red]"
            lines.append(f"[bold]{key}:[/bold] {value}")
        self._console.print(Panel("\n".join(lines), title=title, border_style="blue"))

    # User input
    def input(self, prompt: str) -> str:
        """Read one line from stdin, waiting as long as it takes.

        Raises:
            EOFError: If input stream is closed
            KeyboardInterrupt: If user presses Ctrl+C
        """
        return self._console.input(prompt)

    def confirm(
        self,
        message: str,
        default: bool = False,
        skip_confirm: bool = False,
    ) -> bool:
        """Ask a yes/no question.

        Args:
            message: Question to ask
            default: Answer used for an empty reply
            skip_confirm: Return True without asking (--yes)

        Returns:
            True if confirmed; closed input or Ctrl+C count as no
        """
        if skip_confirm:
            return True

        suffix = "\\[Y/n]" if default else "\\[y/N]"
        try:
            response = self._console.input(f"{message} {suffix}: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False

        if not response:
            return default
        return response in ("y", "yes")


# Global console instance
console = Console()
