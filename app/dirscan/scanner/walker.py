"""Recursive directory walk with event emission.

The walker visits every name of a catalog, classifies it, and either
closes it right away or descends into it. Per-entry failures only set
the ERROR flag on that entry; the single fatal condition is failing to
return to a parent directory, which would leave the cursor out of step
with the logical path for the rest of the scan.

Recursion is driven by an explicit stack of catalog iterators, so tree
depth is bounded by the directory descriptor limit rather than by the
interpreter's recursion limit. One descriptor stays open per level; a
directory below the point where the process runs out of descriptors
(RLIMIT_NOFILE) is flagged ERROR and not entered.
"""

import errno
import logging
from collections.abc import Callable, Iterator

from dirscan.scanner.classifier import EntryClassifier
from dirscan.scanner.cursor import DirectoryCursor
from dirscan.scanner.errors import CatalogOpenError, ErrorLog, ScanCancelledError, ScanError
from dirscan.scanner.models import UNMEASURED, Entry
from dirscan.scanner.path_tracker import PathTracker
from dirscan.scanner.reader import Catalog, read_catalog
from dirscan.scanner.sink import OutputSink

logger = logging.getLogger(__name__)


class Walker:
    """Walks a directory tree below the cursor's current position.

    Args:
        cursor: Cursor positioned in the directory whose catalog is walked.
        tracker: Logical path of the cursor's current position.
        classifier: Classifier configured for this scan.
        sink: Receives the enter/leave events.
        error_log: Records soft failures.
        cancel: Optional callable checked before every entry; returning
            True stops the walk with ScanCancelledError.
    """

    def __init__(
        self,
        cursor: DirectoryCursor,
        tracker: PathTracker,
        classifier: EntryClassifier,
        sink: OutputSink,
        error_log: ErrorLog,
        cancel: Callable[[], bool] | None = None,
    ) -> None:
        self._cursor = cursor
        self._tracker = tracker
        self._classifier = classifier
        self._sink = sink
        self._error_log = error_log
        self._cancel = cancel

    def walk(self, catalog: Catalog) -> None:
        """Emit events for every entry of ``catalog`` and their subtrees.

        The events of the directory owning ``catalog`` are the caller's
        responsibility. On a fatal error or cancellation every directory
        opened by this call is closed in the sink before the exception
        propagates, so enter/leave events stay balanced.

        Raises:
            FatalScanError: If returning to a parent directory fails.
            ScanCancelledError: If the cancel callback returned True.
        """
        frames: list[Iterator[str]] = [iter(catalog)]
        try:
            while frames:
                name = next(frames[-1], None)
                if name is None:
                    frames.pop()
                    if frames:
                        self._leave_directory()
                    continue

                if self._cancel is not None and self._cancel():
                    raise ScanCancelledError(f"Scan cancelled at {self._tracker.current()}")

                children = self._visit(name)
                if children is not None:
                    frames.append(iter(children))
        except ScanError:
            for _ in range(len(frames) - 1):
                self._sink.on_leave()
                self._tracker.leave()
            raise

    def _visit(self, name: str) -> Catalog | None:
        """Classify and emit one entry.

        Returns:
            The entry's catalog if it was entered and its children are
            now pending, None if the entry has already been closed.
        """
        self._tracker.enter(name)
        path = self._tracker.current()

        entry = Entry(name=name)
        self._classifier.classify(entry, path, self._cursor.lstat)

        if not entry.is_dir or entry.flags & UNMEASURED:
            self._emit_closed(entry)
            return None

        try:
            self._cursor.descend(name)
        except OSError as e:
            if e.errno == errno.EMFILE:
                logger.warning(
                    "Out of file descriptors at depth %d, not entering %s",
                    self._cursor.depth,
                    path,
                )
            entry.mark_error()
            self._error_log.record(path, e)
            self._emit_closed(entry)
            return None

        try:
            catalog = read_catalog(self._cursor)
        except CatalogOpenError as e:
            entry.mark_error()
            self._error_log.record(path, e)
            self._emit_closed(entry)
            self._cursor.ascend()
            return None

        if catalog.partial:
            entry.mark_error()
            self._error_log.record(path, OSError("directory listing incomplete"))

        entry.recursed = True
        self._sink.on_enter(entry)
        return catalog

    def _emit_closed(self, entry: Entry) -> None:
        self._sink.on_enter(entry)
        self._sink.on_leave()
        self._tracker.leave()

    def _leave_directory(self) -> None:
        self._sink.on_leave()
        self._tracker.leave()
        self._cursor.ascend()
