"""CLI commands for dirscan.

This package contains all subcommand implementations.
"""

from dirscan.cli.commands import config, scan

__all__ = ["config", "scan"]
