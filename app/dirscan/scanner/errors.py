"""Scanner error taxonomy and the error log side-channel.

Soft failures are per-entry: they set the ERROR flag and are recorded
in an ErrorLog so the caller can tell the user what went wrong.
Fatal failures abort the remaining traversal and are raised as
FatalScanError.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """Base exception for scanner errors."""


class FatalScanError(ScanError):
    """Raised when the scan cannot continue.

    Covers an unusable root (unresolvable, not openable, not a
    directory, not listable) and failing to return to a parent
    directory after recursing into a child.
    """


class CatalogOpenError(ScanError):
    """Raised when a directory listing cannot be opened at all."""


class ScanCancelledError(ScanError):
    """Raised when the cancel callback asks the walk to stop."""


@dataclass(frozen=True, slots=True)
class ScanIssue:
    """A soft failure recorded during a scan.

    Attributes:
        path: Full logical path of the failing entry.
        message: Human-readable reason.
    """

    path: str
    message: str


class ErrorLog:
    """Records soft failures for later display.

    Only the most recent ``max_issues`` failures are kept; ``count``
    always reflects the total.

    Args:
        max_issues: Number of issues retained in ``issues``.
    """

    def __init__(self, max_issues: int = 100) -> None:
        self._max_issues = max_issues
        self._issues: list[ScanIssue] = []
        self.count = 0
        self.last_path: str | None = None

    @property
    def issues(self) -> list[ScanIssue]:
        return list(self._issues)

    def record(self, path: str, exc: BaseException | None = None) -> None:
        """Record a soft failure for ``path``.

        Args:
            path: Full logical path of the entry that failed.
            exc: The underlying exception, if any.
        """
        message = _describe(exc)
        logger.debug("Soft failure at %s: %s", path, message)

        self.count += 1
        self.last_path = path
        self._issues.append(ScanIssue(path=path, message=message))
        if len(self._issues) > self._max_issues:
            del self._issues[0]

    def clear(self) -> None:
        self._issues.clear()
        self.count = 0
        self.last_path = None


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc) or type(exc).__name__
