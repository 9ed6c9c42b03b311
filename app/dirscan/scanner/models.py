"""Scanner domain models.

This module defines the data structures exchanged between the scanner
and its output sinks: the per-entry status flags, the entry record
itself, and the outcome of a complete scan.
"""

from dataclasses import dataclass, field
from enum import Enum, Flag, auto


class EntryFlag(Flag):
    """Independent status flags of a scanned entry.

    Attributes:
        IS_FILE: Regular file.
        IS_DIR: Directory. Never set together with IS_FILE; neither set
            means another object type (symlink, socket, device...).
        HARD_LINKED: Non-directory with a link count above one.
        OTHER_FILESYSTEM: Lives on another device than the scan root
            while same-filesystem mode is enabled.
        EXCLUDED: Path matched an exclude pattern.
        ERROR: Metadata could not be read, or the entry (or its listing)
            failed while being processed.
    """

    NONE = 0
    IS_FILE = auto()
    IS_DIR = auto()
    HARD_LINKED = auto()
    OTHER_FILESYSTEM = auto()
    EXCLUDED = auto()
    ERROR = auto()


# Flags that keep sizes unset and prevent recursion.
UNMEASURED = EntryFlag.ERROR | EntryFlag.EXCLUDED | EntryFlag.OTHER_FILESYSTEM


@dataclass(slots=True)
class Entry:
    """A single filesystem object observed during a scan.

    Entries are built and classified by the scanner, then handed to the
    sink exactly once. The scanner keeps no reference afterwards.

    Attributes:
        name: Path segment relative to the parent directory. The root
            entry carries the resolved root path.
        inode: Inode number, None when metadata was not obtained.
        device: Device number, None when metadata was not obtained.
        size_on_disk: Allocated bytes (blocks * 512), None when unmeasured.
        apparent_size: Logical length in bytes, None when unmeasured.
        flags: Status flags.
        recursed: True when the sink will receive the children of this
            entry between its enter and leave events.
    """

    name: str
    inode: int | None = None
    device: int | None = None
    size_on_disk: int | None = None
    apparent_size: int | None = None
    flags: EntryFlag = field(default=EntryFlag.NONE)
    recursed: bool = False

    @property
    def is_dir(self) -> bool:
        return EntryFlag.IS_DIR in self.flags

    @property
    def is_file(self) -> bool:
        return EntryFlag.IS_FILE in self.flags

    @property
    def has_error(self) -> bool:
        return EntryFlag.ERROR in self.flags

    @property
    def is_measured(self) -> bool:
        """Check whether the entry contributes to size aggregates."""
        return not (self.flags & UNMEASURED)

    def mark_error(self) -> None:
        """Flag the entry as failed and drop any sizes already recorded."""
        self.flags |= EntryFlag.ERROR
        self.size_on_disk = None
        self.apparent_size = None


class SinkDecision(str, Enum):
    """What the host should do once a sink has been finalized."""

    CONTINUE = "continue"
    TERMINATE = "terminate"


class ScanOutcome(str, Enum):
    """Completion status of a scan.

    Attributes:
        COMPLETE: Whole tree traversed without errors.
        COMPLETE_WITH_ERRORS: Whole tree traversed, some entries failed.
        ABORTED: A fatal failure stopped the scan early.
        CANCELLED: The cancel callback stopped the scan early.
    """

    COMPLETE = "complete"
    COMPLETE_WITH_ERRORS = "complete_with_errors"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Summary of a finished scan.

    Attributes:
        root_path: Resolved root path, or the requested path when
            resolution failed.
        outcome: Completion status.
        decision: Answer of the sink's finalize call.
        error_count: Number of soft failures recorded.
        last_error: Path of the most recent soft failure, if any.
        fatal_error: Message of the fatal failure, if any.
    """

    root_path: str
    outcome: ScanOutcome
    decision: SinkDecision
    error_count: int = 0
    last_error: str | None = None
    fatal_error: str | None = None
