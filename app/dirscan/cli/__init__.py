"""CLI package for dirscan.

This package contains the Typer application and all subcommands.
"""

from dirscan.cli.main import app

__all__ = ["app"]
