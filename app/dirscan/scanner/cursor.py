"""Explicit directory navigation for the scanner.

Instead of moving the process working directory around, the scanner
keeps a stack of open directory descriptors. Every metadata call and
listing is made relative to the descriptor on top of the stack, so the
scan never depends on (or changes) process-wide state.
"""

import logging
import os

from dirscan.scanner.errors import FatalScanError

logger = logging.getLogger(__name__)

_DIR_FLAGS = os.O_RDONLY | os.O_DIRECTORY | getattr(os, "O_CLOEXEC", 0)


def resolve_root(path: str) -> str:
    """Resolve a scan root to its canonical absolute form.

    Args:
        path: Path given by the user, possibly relative or through symlinks.

    Returns:
        Canonical absolute path.

    Raises:
        FatalScanError: If the path does not exist or cannot be resolved.
    """
    try:
        return os.path.realpath(path, strict=True)
    except OSError as e:
        msg = f"Cannot resolve {path}: {e.strerror or e}"
        raise FatalScanError(msg) from e


class DirectoryCursor:
    """Stack of open directory descriptors, one per recursion level.

    The number of open descriptors is bounded by the depth of the tree
    being scanned. Listing handles are separate and short-lived (see
    ``dirscan.scanner.reader``).
    """

    def __init__(self) -> None:
        self._fds: list[int] = []

    @property
    def depth(self) -> int:
        """Number of directories currently open (root included)."""
        return len(self._fds)

    def _top(self) -> int:
        if not self._fds:
            msg = "Directory cursor is not positioned in any directory"
            raise RuntimeError(msg)
        return self._fds[-1]

    def open_root(self, path: str) -> os.stat_result:
        """Position the cursor on the scan root.

        Args:
            path: Absolute, resolved root path.

        Returns:
            Metadata of the root directory.

        Raises:
            FatalScanError: If the root cannot be opened or is not a directory.
        """
        if self._fds:
            msg = "Directory cursor is already open"
            raise RuntimeError(msg)

        try:
            fd = os.open(path, _DIR_FLAGS)
        except NotADirectoryError as e:
            msg = f"{path} is not a directory"
            raise FatalScanError(msg) from e
        except OSError as e:
            msg = f"Cannot open {path}: {e.strerror or e}"
            raise FatalScanError(msg) from e

        self._fds.append(fd)
        try:
            return os.fstat(fd)
        except OSError as e:
            msg = f"Cannot stat {path}: {e.strerror or e}"
            raise FatalScanError(msg) from e

    def lstat(self, name: str) -> os.stat_result:
        """Read metadata of ``name`` without following symlinks.

        Raises:
            OSError: If the metadata cannot be obtained.
        """
        return os.stat(name, dir_fd=self._top(), follow_symlinks=False)

    def descend(self, name: str) -> None:
        """Enter the child directory ``name``.

        Symlinks are never followed, so a directory swapped for a link
        between classification and descent fails here instead.

        Raises:
            OSError: If the directory cannot be opened.
        """
        fd = os.open(name, _DIR_FLAGS | os.O_NOFOLLOW, dir_fd=self._top())
        self._fds.append(fd)

    def ascend(self) -> None:
        """Return to the parent directory.

        Raises:
            FatalScanError: If the current directory cannot be released.
                The cursor would no longer match the logical path.
        """
        if len(self._fds) < 2:
            msg = "Cannot ascend above the scan root"
            raise FatalScanError(msg)
        fd = self._fds.pop()
        try:
            os.close(fd)
        except OSError as e:
            msg = f"Cannot return to parent directory: {e.strerror or e}"
            raise FatalScanError(msg) from e

    def scandir(self) -> "os._ScandirIterator[str]":
        """Open a listing of the current directory.

        CPython duplicates the descriptor, so closing the returned
        iterator leaves the cursor intact.

        Raises:
            OSError: If the listing cannot be opened.
        """
        return os.scandir(self._top())

    def close(self) -> None:
        """Release every descriptor still held by the cursor."""
        while self._fds:
            fd = self._fds.pop()
            try:
                os.close(fd)
            except OSError as e:
                logger.warning("Failed to close directory descriptor %d: %s", fd, e)

    def __enter__(self) -> "DirectoryCursor":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
