from __future__ import annotations

import os
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import ArchiveNotFound, NotInArchive
from .header import Header, stored_name
from .identity import IdentityLookup
from .reader import ArchiveReader
from .writer import WriteMode, write_entries


Progress = Optional[Callable[[Header], None]]


def create(
    archive: str,
    paths: Sequence[str],
    *,
    progress: Progress = None,
    lookup: Optional[IdentityLookup] = None,
    strict_names: bool = False,
) -> List[Header]:
    """Write a new archive holding ``paths`` in order, discarding any previous content.

    An empty ``paths`` yields an archive made of the 1024-byte footer only.
    """
    return write_entries(
        archive, paths, WriteMode.TRUNCATE, progress=progress, lookup=lookup, strict_names=strict_names
    )


def append(
    archive: str,
    paths: Sequence[str],
    *,
    progress: Progress = None,
    lookup: Optional[IdentityLookup] = None,
    strict_names: bool = False,
) -> List[Header]:
    """Add entries for ``paths`` to an existing archive, replacing its footer in place."""
    if not os.path.exists(archive):
        raise ArchiveNotFound(f"Archive {archive} does not exist, and cannot be appended", archive)
    return write_entries(
        archive, paths, WriteMode.EXTEND, progress=progress, lookup=lookup, strict_names=strict_names
    )


def update(
    archive: str,
    paths: Sequence[str],
    *,
    progress: Progress = None,
    lookup: Optional[IdentityLookup] = None,
    strict_names: bool = False,
) -> List[Header]:
    """Append new copies of members that are already in the archive.

    Every path must already be listed in the archive; otherwise NotInArchive is
    raised and the archive is not touched. Newer copies shadow older ones on
    extraction.
    """
    present = set(list_names(archive))
    missing = [p for p in paths if stored_name(p, strict=strict_names) not in present]
    if missing:
        raise NotInArchive(
            f"One or more of the specified files is not already present in archive {archive}: "
            + ", ".join(missing),
            archive,
        )
    return append(archive, paths, progress=progress, lookup=lookup, strict_names=strict_names)


def list_names(archive: str) -> List[str]:
    with ArchiveReader(archive) as r:
        return r.list()


def list_headers(archive: str) -> List[Header]:
    with ArchiveReader(archive) as r:
        return r.headers()


def extract(archive: str, outdir: str = ".", *, preserve: bool = False, progress: Progress = None) -> List[str]:
    with ArchiveReader(archive) as r:
        return r.extract(outdir, preserve=preserve, progress=progress)


def verify(archive: str) -> List[Tuple[int, str]]:
    """Return ``(offset, name)`` for each header whose checksum is wrong; empty when clean."""
    with ArchiveReader(archive) as r:
        return r.verify()
