"""Logical scan path bookkeeping."""


class PathTracker:
    """Stack of path segments describing the entry being scanned.

    The walker pushes a segment before classifying an entry and pops it
    once the entry (and its subtree) has been emitted. The joined path
    is used for exclude matching and error reporting.

    Args:
        root: Absolute root path of the scan.
    """

    def __init__(self, root: str = "/") -> None:
        self._root = root
        self._segments: list[str] = []

    def enter(self, name: str) -> None:
        self._segments.append(name)

    def leave(self) -> None:
        if not self._segments:
            msg = f"Cannot leave {self._root}: already at the scan root"
            raise RuntimeError(msg)
        self._segments.pop()

    def current(self) -> str:
        """Return the full logical path of the current entry."""
        if not self._segments:
            return self._root
        base = self._root.rstrip("/")
        return base + "/" + "/".join(self._segments)
