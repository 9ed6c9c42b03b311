"""Shared Rich display functions for scan results.

Provides the table builder, JSON conversion and summary printer used
by the scan command.
"""

from typing import Any

from rich.markup import escape
from rich.table import Table

from dirscan.scanner.errors import ScanIssue
from dirscan.scanner.models import EntryFlag, ScanOutcome, ScanResult
from dirscan.scanner.sink import SortKey, TreeNode
from dirscan.utils.formatting import (
    console,
    display_name,
    format_size,
    print_success,
    print_warning,
)


def entry_marker(node: TreeNode) -> str:
    """Return a one-character marker describing an entry's status.

    ``!`` error, ``.`` error below, ``<`` excluded, ``>`` other
    filesystem, ``H`` hard link, ``e`` empty directory.
    """
    flags = node.entry.flags
    if EntryFlag.ERROR in flags:
        return "!"
    if node.sub_error:
        return "."
    if EntryFlag.EXCLUDED in flags:
        return "<"
    if EntryFlag.OTHER_FILESYSTEM in flags:
        return ">"
    if EntryFlag.HARD_LINKED in flags:
        return "H"
    if node.entry.recursed and not node.children:
        return "e"
    return ""


def _name_markup(node: TreeNode) -> str:
    flags = node.entry.flags
    if EntryFlag.ERROR in flags:
        style = "entry.error"
    elif EntryFlag.EXCLUDED in flags:
        style = "entry.excluded"
    elif EntryFlag.OTHER_FILESYSTEM in flags:
        style = "entry.otherfs"
    elif node.entry.is_dir:
        style = "entry.dir"
    elif node.entry.is_file:
        style = "entry.file"
    else:
        style = "entry.other"
    suffix = "/" if node.entry.is_dir else ""
    return f"[{style}]{escape(display_name(node.name) + suffix)}[/{style}]"


def create_tree_table(
    root: TreeNode,
    nodes: list[TreeNode],
    *,
    apparent: bool = False,
    si: bool = False,
) -> Table:
    """Create a Rich table listing ``nodes`` below ``root``.

    Args:
        root: Root of the scanned tree, used for the title and share column.
        nodes: Children to display, already sorted and limited.
        apparent: Show apparent sizes instead of disk usage.
        si: Use base-10 units.

    Returns:
        Rich Table configured for scan display.
    """
    total = root.apparent_size if apparent else root.size

    table = Table(
        title=escape(display_name(root.path)),
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=1, justify="center")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Share", style="muted", justify="right", width=6)
    table.add_column("Items", style="muted", justify="right")
    table.add_column("Name", no_wrap=True)

    for node in nodes:
        size = node.apparent_size if apparent else node.size
        measured = node.entry.is_measured or node.entry.recursed
        share = f"{size / total:.0%}" if total and measured else "-"
        items = str(node.items) if node.entry.recursed else ""
        table.add_row(
            entry_marker(node),
            format_size(size, si=si) if measured else "-",
            share,
            items,
            _name_markup(node),
        )

    return table


def node_to_dict(node: TreeNode) -> dict[str, Any]:
    """Convert a tree node to a dictionary for JSON output."""
    entry = node.entry
    return {
        "path": display_name(node.path),
        "name": display_name(entry.name),
        "flags": [flag.name.lower() for flag in EntryFlag if flag in entry.flags],
        "inode": entry.inode,
        "device": entry.device,
        "size_on_disk": entry.size_on_disk,
        "apparent_size": entry.apparent_size,
        "total_size": node.size,
        "total_apparent_size": node.apparent_size,
        "items": node.items,
    }


def result_to_dict(
    result: ScanResult,
    root: TreeNode | None,
    nodes: list[TreeNode],
    issues: list[ScanIssue],
) -> dict[str, Any]:
    """Convert a scan result and its displayed nodes for JSON output."""
    return {
        "root": display_name(result.root_path),
        "outcome": result.outcome.value,
        "error_count": result.error_count,
        "fatal_error": display_name(result.fatal_error) if result.fatal_error else None,
        "total": node_to_dict(root) if root is not None else None,
        "entries": [node_to_dict(n) for n in nodes],
        "errors": [{"path": display_name(i.path), "message": i.message} for i in issues],
    }


def select_children(
    root: TreeNode,
    sort: SortKey,
    limit: int | None,
    *,
    dirs_first: bool = False,
) -> list[TreeNode]:
    """Sort the root's children and apply the display limit."""
    ordered = root.sorted_children(sort, dirs_first=dirs_first)
    return ordered[:limit] if limit else ordered


def print_scan_summary(result: ScanResult, root: TreeNode | None, *, si: bool = False) -> None:
    """Print the summary line and the outcome of a scan."""
    if root is not None:
        console.print(
            f"\n[muted]Total disk usage: {format_size(root.size, si=si)}  "
            f"Apparent size: {format_size(root.apparent_size, si=si)}  "
            f"Items: {root.items}[/muted]"
        )

    if result.outcome == ScanOutcome.COMPLETE:
        print_success("Scan complete.")
    elif result.outcome == ScanOutcome.COMPLETE_WITH_ERRORS:
        last = escape(display_name(result.last_error or "-"))
        print_warning(
            f"Scan complete with {result.error_count} unreadable entries (last: {last})"
        )
    elif result.outcome == ScanOutcome.CANCELLED:
        print_warning("Scan cancelled; results are incomplete.")
