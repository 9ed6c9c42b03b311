"""Output sinks receiving scanner events.

The scanner reports the tree as strictly paired events: every entry
gets ``on_enter`` followed, eventually, by exactly one ``on_leave``.
Entries with ``recursed`` set receive the events of their children in
between; all other entries (files, symlinks, and directories that were
excluded, on another filesystem, or failed) are closed immediately.
``finalize`` is called once when the scan ends.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from dirscan.scanner.models import Entry, EntryFlag, SinkDecision

logger = logging.getLogger(__name__)


class OutputSink(ABC):
    """Abstract consumer of scan events.

    Example:
        >>> sink = TreeSink()
        >>> ScanDriver(sink).run("/srv")
        >>> print(sink.root.size)
    """

    @abstractmethod
    def on_enter(self, entry: Entry) -> None:
        """Receive a new entry. Ownership passes to the sink."""

    @abstractmethod
    def on_leave(self) -> None:
        """Close the most recently entered, still open entry."""

    @abstractmethod
    def finalize(self, had_fatal_error: bool) -> SinkDecision:
        """Conclude the scan.

        Args:
            had_fatal_error: True if the scan was aborted by a fatal failure.

        Returns:
            Whether the host should continue or terminate.
        """


class SortKey(str, Enum):
    """Orderings available for tree children."""

    SIZE = "size"
    APPARENT_SIZE = "apparent_size"
    ITEMS = "items"
    NAME = "name"


@dataclass(eq=False, slots=True)
class TreeNode:
    """A node of the in-memory tree built by TreeSink.

    Attributes:
        entry: The scanned entry.
        parent: Parent node, None for the root.
        children: Child nodes in the order they were received.
        size: Disk usage of the entry and everything below it.
        apparent_size: Apparent size of the entry and everything below it.
        items: Number of entries below this node.
        sub_error: True if any entry below this node has ERROR set.
    """

    entry: Entry
    parent: TreeNode | None = None
    children: list[TreeNode] = field(default_factory=lambda: [])
    size: int = 0
    apparent_size: int = 0
    items: int = 0
    sub_error: bool = False
    _links: set[tuple[int, int]] | None = None

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def path(self) -> str:
        """Full path built from the root entry name."""
        parts: list[str] = []
        node: TreeNode | None = self
        while node is not None:
            parts.append(node.entry.name)
            node = node.parent
        parts.reverse()
        root, rest = parts[0], parts[1:]
        if not rest:
            return root
        return root.rstrip("/") + "/" + "/".join(rest)

    def sorted_children(
        self,
        key: SortKey = SortKey.SIZE,
        *,
        dirs_first: bool = False,
    ) -> list[TreeNode]:
        """Return children ordered by ``key``.

        Sizes and item counts sort descending, names ascending; ties
        fall back to the name.
        """
        if key == SortKey.NAME:
            ordered = sorted(self.children, key=lambda n: n.name)
        else:
            attr = key.value
            ordered = sorted(self.children, key=lambda n: (-getattr(n, attr), n.name))
        if dirs_first:
            ordered.sort(key=lambda n: not n.entry.is_dir)
        return ordered


class TreeSink(OutputSink):
    """Builds an in-memory tree and aggregates sizes along the way.

    Sizes of hard-linked entries are counted once per directory subtree:
    a second link to an inode already counted below an ancestor does
    not grow that ancestor again.
    """

    def __init__(self) -> None:
        self.root: TreeNode | None = None
        self._open: list[TreeNode] = []

    @property
    def depth(self) -> int:
        """Number of entries entered and not yet left."""
        return len(self._open)

    def on_enter(self, entry: Entry) -> None:
        parent = self._open[-1] if self._open else None
        if parent is None and self.root is not None:
            msg = "Scan tree already has a root"
            raise RuntimeError(msg)

        node = TreeNode(entry=entry, parent=parent)
        node.size = entry.size_on_disk or 0
        node.apparent_size = entry.apparent_size or 0

        if parent is None:
            self.root = node
        else:
            parent.children.append(node)
            self._add_to_ancestors(node)

        self._open.append(node)

    def on_leave(self) -> None:
        if not self._open:
            msg = "on_leave() without a matching on_enter()"
            raise RuntimeError(msg)
        self._open.pop()

    def finalize(self, had_fatal_error: bool) -> SinkDecision:
        if self.depth:
            logger.warning("Scan finalized with %d entries still open", self.depth)
        if had_fatal_error:
            return SinkDecision.TERMINATE
        return SinkDecision.CONTINUE

    def _add_to_ancestors(self, node: TreeNode) -> None:
        entry = node.entry
        key: tuple[int, int] | None = None
        linked = EntryFlag.HARD_LINKED in entry.flags
        if linked and entry.device is not None and entry.inode is not None:
            key = (entry.device, entry.inode)

        ancestor = node.parent
        while ancestor is not None:
            ancestor.items += 1
            if entry.has_error:
                ancestor.sub_error = True
            if key is None or _claim_link(ancestor, key):
                ancestor.size += node.size
                ancestor.apparent_size += node.apparent_size
            ancestor = ancestor.parent


def _claim_link(node: TreeNode, key: tuple[int, int]) -> bool:
    """Register ``key`` below ``node``; False if it was already counted."""
    if node._links is None:
        node._links = set()
    if key in node._links:
        return False
    node._links.add(key)
    return True
