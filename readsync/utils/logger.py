"""
Console output for read-along sessions.

Narration progress, highlight reports and diagnostics all go through one
themed rich console. Messages are plain text: page content routinely
contains square brackets, so every helper escapes its message before
printing it as markup.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from readsync.utils.config import config

# Styles for status icons, page steps and highlight markers
custom_theme = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "step": "blue bold",
        "highlight": "magenta",
        "debug": "dim",
    }
)

# Global console instance
console = Console(theme=custom_theme)


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]ℹ[/info] {escape(message)}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✓[/success] {escape(message)}")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[warning]⚠[/warning] {escape(message)}")


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[error]✗[/error] {escape(message)}")


def debug(message: str) -> None:
    """Print a debug message when verbose output is enabled."""
    if config.verbose:
        console.print(f"[debug]· {escape(message)}[/debug]")


def step(message: str, step_num: Optional[int] = None, total: Optional[int] = None) -> None:
    """Print a page or stage marker."""
    if step_num and total:
        console.print(f"[step][{step_num}/{total}][/step] {escape(message)}")
    else:
        console.print(f"[step]→[/step] {escape(message)}")


def header(message: str) -> None:
    """Print a section rule with a title."""
    console.print()
    console.rule(f"[bold]{escape(message)}[/bold]")
    console.print()
