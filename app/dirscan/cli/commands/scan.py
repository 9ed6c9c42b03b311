"""Scan command implementation.

Scans a directory tree and displays the disk usage of its entries.
"""

import json
import logging
import resource
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from types import FrameType
from typing import Annotated

import typer
from rich.markup import escape

from dirscan.cli.display import (
    create_tree_table,
    print_scan_summary,
    result_to_dict,
    select_children,
)
from dirscan.core.config import ConfigError, ScanConfig, load_config_or_default
from dirscan.scanner.driver import ScanDriver
from dirscan.scanner.exclude import ExcludeMatcher
from dirscan.scanner.models import ScanOutcome, SinkDecision
from dirscan.scanner.sink import SortKey, TreeSink
from dirscan.utils.formatting import console, display_name, print_error, print_info

logger = logging.getLogger(__name__)

# Exit code used by shells for SIGINT.
EXIT_CANCELLED = 130

# Soft open-file limit requested when the hard limit is unlimited.
DESCRIPTOR_LIMIT = 65536


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


@contextmanager
def _interrupt_flag() -> Iterator[list[bool]]:
    """Turn SIGINT into a flag checked between entries.

    Yields a one-element list set to True once Ctrl+C is pressed. The
    previous handler is restored on exit.
    """
    flag = [False]

    def _handler(_signum: int, _frame: FrameType | None) -> None:
        flag[0] = True

    installed = True
    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # Not on the main thread: leave SIGINT alone.
        installed = False
    try:
        yield flag
    finally:
        if installed:
            signal.signal(signal.SIGINT, previous)


def _raise_descriptor_limit() -> None:
    """Lift the soft open-file limit up to the hard limit.

    The scanner keeps one descriptor open per directory level, so the
    soft limit caps the depth that can be scanned.
    """
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    target = DESCRIPTOR_LIMIT if hard == resource.RLIM_INFINITY else hard
    if soft == resource.RLIM_INFINITY or soft >= target:
        return
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (target, hard))
    except (ValueError, OSError) as e:
        logger.debug("Cannot raise open file limit to %d: %s", target, e)
        return
    logger.debug("Raised open file limit from %d to %d", soft, target)


def _build_matcher(config: ScanConfig) -> ExcludeMatcher:
    """Create the exclude matcher from configured patterns and files."""
    matcher = ExcludeMatcher(config.exclude)
    for pattern_file in config.exclude_from:
        try:
            matcher.add_file(pattern_file)
        except OSError as e:
            message = f"Cannot read exclude file {pattern_file}: {e.strerror or e}"
            print_error(escape(display_name(message)))
            raise typer.Exit(code=1) from e
    if matcher:
        logger.debug("Exclude patterns: %s", ", ".join(matcher.patterns))
    return matcher


def scan_tree(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to scan."),
    ] = Path("."),
    one_file_system: Annotated[
        bool | None,
        typer.Option(
            "--one-file-system/--cross-file-systems",
            "-x",
            help="Do not cross filesystem boundaries.",
            show_default=False,
        ),
    ] = None,
    exclude: Annotated[
        list[str] | None,
        typer.Option(
            "--exclude",
            "-e",
            help="Exclude entries matching a glob pattern (repeatable).",
        ),
    ] = None,
    exclude_from: Annotated[
        list[Path] | None,
        typer.Option(
            "--exclude-from",
            "-X",
            help="Read exclude patterns from a file (repeatable).",
        ),
    ] = None,
    sort: Annotated[
        SortKey | None,
        typer.Option(
            "--sort",
            "-s",
            help="Display order: size, apparent_size, items or name.",
            case_sensitive=False,
        ),
    ] = None,
    dirs_first: Annotated[
        bool,
        typer.Option("--dirs-first", help="List directories before other entries."),
    ] = False,
    apparent_size: Annotated[
        bool,
        typer.Option(
            "--apparent-size",
            "-a",
            help="Show apparent sizes instead of disk usage.",
        ),
    ] = False,
    si: Annotated[
        bool,
        typer.Option("--si", help="Use powers of 1000 for sizes."),
    ] = False,
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-n",
            help="Limit number of entries to display.",
            min=1,
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Read defaults from this config file.",
        ),
    ] = None,
) -> None:
    """Scan a directory and display its largest entries.

    Command-line options override the defaults from the config file.

    Examples:
        dirscan scan                        # Scan the current directory
        dirscan scan /var -x                # Stay on the root filesystem
        dirscan scan ~ -e node_modules      # Skip node_modules directories
        dirscan scan /srv -X excludes.txt   # Read patterns from a file
        dirscan scan /data --format json    # Output as JSON
    """
    try:
        defaults = load_config_or_default(config_path)
    except ConfigError as e:
        print_error(escape(display_name(str(e))))
        raise typer.Exit(code=1) from e

    config = defaults.model_copy(
        update={
            "exclude": [*defaults.exclude, *(exclude or [])],
            "exclude_from": [*defaults.exclude_from, *(exclude_from or [])],
            "one_file_system": (
                defaults.one_file_system if one_file_system is None else one_file_system
            ),
            "sort": sort.value if sort is not None else defaults.sort,
            "dirs_first": dirs_first or defaults.dirs_first,
            "apparent_size": apparent_size or defaults.apparent_size,
            "si_units": si or defaults.si_units,
            "limit": limit if limit is not None else defaults.limit,
        }
    )

    matcher = _build_matcher(config)
    sink = TreeSink()
    _raise_descriptor_limit()

    with _interrupt_flag() as interrupted:
        driver = ScanDriver(sink, matcher if matcher else None, cancel=lambda: interrupted[0])
        if output_format == OutputFormat.TABLE:
            with console.status(f"Scanning {escape(display_name(str(path)))}..."):
                result = driver.run(str(path.expanduser()), config.one_file_system)
        else:
            result = driver.run(str(path.expanduser()), config.one_file_system)

    root = sink.root
    nodes = (
        select_children(root, SortKey(config.sort), config.limit, dirs_first=config.dirs_first)
        if root
        else []
    )

    if output_format == OutputFormat.JSON:
        data = result_to_dict(result, root, nodes, driver.error_log.issues)
        console.print_json(json.dumps(data))
    else:
        if root is not None:
            console.print(
                create_tree_table(root, nodes, apparent=config.apparent_size, si=config.si_units)
            )
            if config.limit and len(nodes) < len(root.children):
                print_info(f"(showing {len(nodes)} of {len(root.children)} entries)")
        print_scan_summary(result, root, si=config.si_units)

    if result.outcome == ScanOutcome.CANCELLED:
        raise typer.Exit(code=EXIT_CANCELLED)
    if result.decision == SinkDecision.TERMINATE:
        print_error(escape(display_name(result.fatal_error or "Scan results were rejected")))
        raise typer.Exit(code=1)
