"""Directory listing into an in-memory catalog.

The whole listing is read and its handle closed before any child is
visited. A deep recursion therefore never holds more than one listing
handle open, whatever the number of children per directory.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from dirscan.scanner.cursor import DirectoryCursor
from dirscan.scanner.errors import CatalogOpenError

logger = logging.getLogger(__name__)

_PSEUDO_ENTRIES = frozenset({".", ".."})


@dataclass(frozen=True, slots=True)
class Catalog:
    """Child names of one directory, in listing order.

    Attributes:
        names: Child names, never containing "." or "..".
        partial: True if the listing failed part-way through.
    """

    names: tuple[str, ...]
    partial: bool = False

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)


def read_catalog(cursor: DirectoryCursor) -> Catalog:
    """List the directory the cursor is positioned in.

    Args:
        cursor: Cursor positioned inside the directory to list.

    Returns:
        Catalog of child names. ``partial`` is set when reading stopped
        early; the names read so far are kept.

    Raises:
        CatalogOpenError: If the listing cannot be opened at all.
    """
    try:
        listing = cursor.scandir()
    except OSError as e:
        raise CatalogOpenError(e.strerror or str(e)) from e

    names: list[str] = []
    partial = False
    with listing:
        try:
            for item in listing:
                if item.name in _PSEUDO_ENTRIES:
                    continue
                names.append(item.name)
        except OSError as e:
            logger.debug("Listing stopped after %d entries: %s", len(names), e)
            partial = True

    return Catalog(names=tuple(names), partial=partial)
