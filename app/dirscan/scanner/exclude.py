"""Exclude patterns matched against full scan paths.

Patterns use glob syntax (fnmatch), where ``*`` also matches ``/``.
A path is excluded when a pattern matches the full path or any tail of
it that starts right after a ``/``. This makes plain names such as
``node_modules``, extensions such as ``*.o`` and absolute paths such as
``/srv/cache`` all behave as expected.
"""

import fnmatch
import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class ExcludeMatcher:
    """Collection of exclude patterns.

    Args:
        patterns: Initial glob patterns.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns: list[str] = []
        for pattern in patterns:
            self.add_pattern(pattern)

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """Add a single glob pattern. Empty patterns are ignored."""
        if not pattern:
            return
        self._patterns.append(pattern)

    def add_file(self, path: Path) -> int:
        """Read patterns from a file, one per line.

        Blank lines are skipped and line endings stripped.

        Args:
            path: Pattern file to read.

        Returns:
            Number of patterns added.

        Raises:
            OSError: If the file cannot be read.
        """
        added = 0
        with open(path, encoding="utf-8", errors="surrogateescape") as f:
            for line in f:
                pattern = line.rstrip("\r\n")
                if not pattern:
                    continue
                self.add_pattern(pattern)
                added += 1
        logger.debug("Loaded %d exclude patterns from %s", added, path)
        return added

    def matches(self, path: str) -> bool:
        """Check whether ``path`` is excluded.

        Args:
            path: Full logical path of an entry.

        Returns:
            True if any pattern matches the path or one of its tails.
        """
        for pattern in self._patterns:
            if fnmatch.fnmatchcase(path, pattern):
                return True
            for tail in _tails(path):
                if fnmatch.fnmatchcase(tail, pattern):
                    return True
        return False


def _tails(path: str) -> Iterable[str]:
    """Yield every part of ``path`` following a single ``/``."""
    for i, char in enumerate(path):
        if char == "/" and i + 1 < len(path) and path[i + 1] != "/":
            yield path[i + 1 :]
