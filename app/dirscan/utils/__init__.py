"""Utility modules for dirscan.

This module exports commonly used utility functions.
"""

from dirscan.utils.formatting import (
    console,
    display_name,
    err_console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "display_name",
    "err_console",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
