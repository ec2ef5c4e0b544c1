"""
bingwall console utilities

This module provides application-wide access to Rich Console objects for writing diagnostics.
Everything bingwall reports goes to stderr and carries the "[bing-wallpaper]" prefix. Informational
lines can be silenced with --quiet, errors cannot.
"""

from rich.console import Console
from rich.theme import Theme

PREFIX = "[bing-wallpaper]"

bingwall_theme = Theme({"warning": "orange_red1", "fail": "bold red", "describe": ""})

log_console = Console(theme=bingwall_theme, stderr=True)
error_console = Console(theme=bingwall_theme, stderr=True)


def set_quiet(quiet: bool):
    """Silence (or restore) informational output."""

    log_console.quiet = quiet


def _print(target: Console, msg: str, style: str):
    # markup and emoji are off so the bracketed prefix and file paths are printed literally
    target.print(
        f"{PREFIX} {msg}", style=style, markup=False, emoji=False, highlight=False, soft_wrap=True
    )


def log(msg: str):
    """
    Format informational msg and print to stderr. Suppressed in quiet mode.
    """

    _print(log_console, msg, "describe")


def warn(msg: str):
    """
    Format an advisory msg and print to stderr. Suppressed in quiet mode.
    """

    _print(log_console, msg, "warning")


def fail(msg: str):
    """
    Format failure msg and print to stderr. Never suppressed.
    """

    _print(error_console, f"ERROR: {msg}", "fail")
