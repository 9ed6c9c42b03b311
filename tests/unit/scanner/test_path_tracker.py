"""Unit tests for PathTracker."""

import pytest
from dirscan.scanner.path_tracker import PathTracker


class TestPathTracker:
    """Tests for PathTracker."""

    def test_current_at_root(self) -> None:
        """Without segments the current path is the root."""
        tracker = PathTracker("/srv")

        assert tracker.current() == "/srv"

    def test_enter_joins_segments(self) -> None:
        """Entered segments are joined with single slashes."""
        tracker = PathTracker("/srv")
        tracker.enter("data")
        tracker.enter("file.txt")

        assert tracker.current() == "/srv/data/file.txt"

    def test_filesystem_root(self) -> None:
        """A root of "/" does not produce a double slash."""
        tracker = PathTracker("/")
        tracker.enter("etc")

        assert tracker.current() == "/etc"

    def test_leave_restores_previous_path(self) -> None:
        """Leaving pops exactly the last segment."""
        tracker = PathTracker("/srv")
        tracker.enter("a")
        tracker.enter("b")

        tracker.leave()

        assert tracker.current() == "/srv/a"

    def test_leave_at_root_raises(self) -> None:
        """Leaving past the root is a programming error."""
        tracker = PathTracker("/srv")

        with pytest.raises(RuntimeError, match="already at the scan root"):
            tracker.leave()
