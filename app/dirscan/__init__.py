"""dirscan - recursive disk usage scanner.

Walks a directory tree, measures every entry and streams the result
to an output sink as matched enter/leave events.
"""

__version__ = "0.1.0"
