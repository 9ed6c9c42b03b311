"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.theme import Theme

THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "header": "#69B9A1",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "bold #f53263",
        "info": "#0ec1c8",
        # Entry styles
        "entry.dir": "bold #0e8ac8",
        "entry.file": "#ffffff",
        "entry.other": "#b2bec3",
        "entry.excluded": "dim #b2bec3",
        "entry.otherfs": "italic #d44ebc",
        "entry.error": "#f53263",
        "size": "#c1ff62",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


console = Console(theme=THEME, color_system=_detect_color_system())
err_console = Console(theme=THEME, stderr=True, color_system=_detect_color_system())


def display_name(name: str) -> str:
    """Make a filesystem name safe to print.

    Names that are not valid UTF-8 come back from the OS with surrogate
    escapes, which cannot be encoded for output. Their raw bytes are shown
    as backslash escapes instead, e.g. ``bad\\xff``.
    """
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def format_size(size_bytes: int | None, *, si: bool = False) -> str:
    """Format a byte count as a human-readable string.

    Args:
        size_bytes: Number of bytes, None for unknown.
        si: Use powers of 1000 (kB, MB...) instead of 1024 (KiB, MiB...).

    Returns:
        Formatted size, or "-" when the size is unknown.
    """
    if size_bytes is None:
        return "-"
    base = 1000 if si else 1024
    units = ("B", "kB", "MB", "GB", "TB", "PB") if si else ("B", "KiB", "MiB", "GiB", "TiB", "PiB")

    size = float(size_bytes)
    for unit in units[:-1]:
        if abs(size) < base:
            return f"{int(size)} B" if unit == "B" else f"{size:.1f} {unit}"
        size /= base
    return f"{size:.1f} {units[-1]}"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
