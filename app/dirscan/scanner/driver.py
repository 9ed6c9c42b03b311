"""Scan bootstrap and outcome reporting."""

import logging
import stat
from collections.abc import Callable

from dirscan.scanner.classifier import EntryClassifier, ExcludeMatcherLike
from dirscan.scanner.cursor import DirectoryCursor, resolve_root
from dirscan.scanner.errors import CatalogOpenError, ErrorLog, FatalScanError, ScanCancelledError
from dirscan.scanner.models import Entry, ScanOutcome, ScanResult
from dirscan.scanner.path_tracker import PathTracker
from dirscan.scanner.reader import read_catalog
from dirscan.scanner.sink import OutputSink
from dirscan.scanner.walker import Walker

logger = logging.getLogger(__name__)


class ScanDriver:
    """Runs complete scans and reports them to a sink.

    Each call to ``run`` is an independent scan with its own cursor,
    path tracker and root device.

    Args:
        sink: Receives the events and the final outcome.
        exclude_matcher: Consulted with the full path of every entry.
        cancel: Optional callable checked between entries; returning
            True stops the scan early.
        error_log: Records soft failures. A fresh log is used if omitted.

    Example:
        >>> sink = TreeSink()
        >>> result = ScanDriver(sink).run("/var/log", stay_on_filesystem=True)
        >>> result.outcome
        <ScanOutcome.COMPLETE: 'complete'>
    """

    def __init__(
        self,
        sink: OutputSink,
        exclude_matcher: ExcludeMatcherLike | None = None,
        *,
        cancel: Callable[[], bool] | None = None,
        error_log: ErrorLog | None = None,
    ) -> None:
        self._sink = sink
        self._exclude_matcher = exclude_matcher
        self._cancel = cancel
        self.error_log = error_log if error_log is not None else ErrorLog()

    def run(self, root_path: str, stay_on_filesystem: bool = False) -> ScanResult:
        """Scan the tree below ``root_path``.

        Failures never escape as exceptions: soft failures are counted in
        the result, fatal ones and cancellation end the scan early and
        are reported through ``outcome``. The sink is finalized exactly
        once in every case.

        Args:
            root_path: Directory to scan.
            stay_on_filesystem: Do not measure or descend into entries
                on another device than the root.

        Returns:
            ScanResult describing how the scan ended.
        """
        self.error_log.clear()
        resolved = root_path
        outcome = ScanOutcome.COMPLETE
        fatal_error: str | None = None

        with DirectoryCursor() as cursor:
            try:
                resolved = resolve_root(root_path)
                logger.info("Scanning %s", resolved)
                self._scan(cursor, resolved, stay_on_filesystem)
            except FatalScanError as e:
                logger.error("Scan of %s aborted: %s", root_path, e)
                outcome = ScanOutcome.ABORTED
                fatal_error = str(e)
            except ScanCancelledError as e:
                logger.warning("%s", e)
                outcome = ScanOutcome.CANCELLED

        if outcome == ScanOutcome.COMPLETE and self.error_log.count:
            outcome = ScanOutcome.COMPLETE_WITH_ERRORS

        decision = self._sink.finalize(outcome == ScanOutcome.ABORTED)
        logger.info(
            "Scan of %s finished: %s (%d errors)", resolved, outcome.value, self.error_log.count
        )

        return ScanResult(
            root_path=resolved,
            outcome=outcome,
            decision=decision,
            error_count=self.error_log.count,
            last_error=self.error_log.last_path,
            fatal_error=fatal_error,
        )

    def _scan(self, cursor: DirectoryCursor, root: str, stay_on_filesystem: bool) -> None:
        st = cursor.open_root(root)
        if not stat.S_ISDIR(st.st_mode):
            msg = f"{root} is not a directory"
            raise FatalScanError(msg)

        classifier = EntryClassifier(
            self._exclude_matcher,
            stay_on_filesystem=stay_on_filesystem,
            error_log=self.error_log,
        )
        classifier.root_device = st.st_dev

        try:
            catalog = read_catalog(cursor)
        except CatalogOpenError as e:
            msg = f"Cannot list {root}: {e}"
            raise FatalScanError(msg) from e

        root_entry = Entry(name=root)
        classifier.apply_metadata(root_entry, st)
        if catalog.partial:
            root_entry.mark_error()
            self.error_log.record(root, OSError("directory listing incomplete"))
        root_entry.recursed = True

        tracker = PathTracker(root)
        walker = Walker(cursor, tracker, classifier, self._sink, self.error_log, self._cancel)

        self._sink.on_enter(root_entry)
        try:
            walker.walk(catalog)
        finally:
            self._sink.on_leave()
