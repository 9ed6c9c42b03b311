"""Entry classification from filesystem metadata.

Turns lstat results into entry flags and sizes, applying the exclude
and same-filesystem policies. Recursion decisions are left to the
walker.
"""

import os
import stat
from collections.abc import Callable
from typing import Protocol

from dirscan.scanner.errors import ErrorLog
from dirscan.scanner.models import UNMEASURED, Entry, EntryFlag

# st_blocks is always expressed in 512-byte units.
BLOCK_SIZE = 512


class ExcludeMatcherLike(Protocol):
    """Anything that can tell whether a full path is excluded."""

    def matches(self, path: str) -> bool: ...


class EntryClassifier:
    """Classifies entries for one scan.

    Args:
        exclude_matcher: Queried with the full path of every entry.
            None disables exclusion.
        stay_on_filesystem: Flag entries on another device than the root.
        error_log: Receives the path of entries whose metadata fails.
    """

    def __init__(
        self,
        exclude_matcher: ExcludeMatcherLike | None = None,
        *,
        stay_on_filesystem: bool = False,
        error_log: ErrorLog | None = None,
    ) -> None:
        self._exclude_matcher = exclude_matcher
        self._stay_on_filesystem = stay_on_filesystem
        self._error_log = error_log if error_log is not None else ErrorLog()
        self.root_device: int | None = None

    def classify(
        self,
        entry: Entry,
        path: str,
        lstat: Callable[[str], os.stat_result],
    ) -> None:
        """Populate ``entry`` from the exclude policy and its metadata.

        Args:
            entry: Freshly created entry; mutated in place.
            path: Full logical path of the entry.
            lstat: Reads metadata of ``entry.name`` without following links.
        """
        if self._exclude_matcher is not None and self._exclude_matcher.matches(path):
            entry.flags |= EntryFlag.EXCLUDED

        if entry.flags & (EntryFlag.ERROR | EntryFlag.EXCLUDED):
            return

        try:
            st = lstat(entry.name)
        except OSError as e:
            entry.mark_error()
            self._error_log.record(path, e)
            return

        self.apply_metadata(entry, st)

    def apply_metadata(self, entry: Entry, st: os.stat_result) -> None:
        """Copy identity, type and size information from ``st``."""
        entry.inode = st.st_ino
        entry.device = st.st_dev

        if stat.S_ISREG(st.st_mode):
            entry.flags |= EntryFlag.IS_FILE
        elif stat.S_ISDIR(st.st_mode):
            entry.flags |= EntryFlag.IS_DIR

        if not stat.S_ISDIR(st.st_mode) and st.st_nlink > 1:
            entry.flags |= EntryFlag.HARD_LINKED

        if self._stay_on_filesystem and st.st_dev != self.root_device:
            entry.flags |= EntryFlag.OTHER_FILESYSTEM

        if not entry.flags & UNMEASURED:
            entry.size_on_disk = _blocks(st) * BLOCK_SIZE
            entry.apparent_size = st.st_size


def _blocks(st: os.stat_result) -> int:
    # st_blocks is missing on some platforms; fall back to rounding up.
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return (st.st_size + BLOCK_SIZE - 1) // BLOCK_SIZE
    return blocks
