"""Filesystem tree scanning.

This package provides the scan driver and walker, entry classification,
directory listing, exclude patterns and the output sink contract with
an in-memory tree implementation.
"""

from dirscan.scanner.classifier import EntryClassifier
from dirscan.scanner.cursor import DirectoryCursor, resolve_root
from dirscan.scanner.driver import ScanDriver
from dirscan.scanner.errors import (
    CatalogOpenError,
    ErrorLog,
    FatalScanError,
    ScanCancelledError,
    ScanError,
    ScanIssue,
)
from dirscan.scanner.exclude import ExcludeMatcher
from dirscan.scanner.models import Entry, EntryFlag, ScanOutcome, ScanResult, SinkDecision
from dirscan.scanner.path_tracker import PathTracker
from dirscan.scanner.reader import Catalog, read_catalog
from dirscan.scanner.sink import OutputSink, SortKey, TreeNode, TreeSink
from dirscan.scanner.walker import Walker

__all__ = [
    "Catalog",
    "CatalogOpenError",
    "DirectoryCursor",
    "Entry",
    "EntryClassifier",
    "EntryFlag",
    "ErrorLog",
    "ExcludeMatcher",
    "FatalScanError",
    "OutputSink",
    "PathTracker",
    "ScanCancelledError",
    "ScanDriver",
    "ScanError",
    "ScanIssue",
    "ScanOutcome",
    "ScanResult",
    "SinkDecision",
    "SortKey",
    "TreeNode",
    "TreeSink",
    "Walker",
    "read_catalog",
    "resolve_root",
]
