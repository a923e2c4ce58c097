from __future__ import annotations

import enum
import os
from typing import BinaryIO, Callable, Iterable, List, Optional

from .constants import BLOCK_SIZE, FOOTER_SIZE
from .errors import ArchiveNotFound, SeekFailed, ShortRead, ShortWrite, SourceOpenFailed
from .header import Header, encode
from .identity import IdentityLookup
from .padding import pad_block


class WriteMode(enum.Enum):
    # Open fresh (discarding prior content), write entries, then the footer.
    TRUNCATE = "truncate"
    # Seek to length - 1024 so new entries overwrite the old footer, then write a new one.
    EXTEND = "extend"


class ArchiveWriter:
    """Streaming writer for USTAR archives of regular files."""

    def __init__(
        self,
        out_path: str,
        mode: WriteMode = WriteMode.TRUNCATE,
        *,
        lookup: Optional[IdentityLookup] = None,
        strict_names: bool = False,
    ):
        self.out_path = out_path
        self.mode = mode
        self.lookup = lookup
        self.strict_names = strict_names
        self.f: Optional[BinaryIO] = None
        self.headers: List[Header] = []

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        file_mode = "wb" if self.mode is WriteMode.TRUNCATE else "r+b"
        try:
            self.f = open(self.out_path, file_mode)
        except OSError as exc:
            raise ArchiveNotFound(
                f"Failed to open archive file {self.out_path}: {exc.strerror or exc}", self.out_path
            ) from exc
        if self.mode is WriteMode.EXTEND:
            try:
                self._seek_to_footer()
            except SeekFailed:
                self.close()
                raise

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def add_file(self, fs_path: str) -> Header:
        """Write one header plus the block-padded contents of ``fs_path``."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        hdr = encode(fs_path, lookup=self.lookup, strict_names=self.strict_names)
        try:
            src = open(fs_path, "rb")
        except OSError as exc:
            raise SourceOpenFailed(f"Failed to open file {fs_path}: {exc.strerror or exc}", fs_path) from exc
        with src:
            self._write(hdr.pack(), f"{fs_path} header")
            remaining = hdr.size
            while remaining > 0:
                try:
                    chunk = src.read(min(BLOCK_SIZE, remaining))
                except OSError as exc:
                    raise ShortRead(f"Failed to read file {fs_path}: {exc.strerror or exc}", fs_path) from exc
                if not chunk:
                    raise ShortRead(f"File {fs_path} shrank while being archived ({remaining} bytes missing)", fs_path)
                if len(chunk) < BLOCK_SIZE and len(chunk) < remaining:
                    raise ShortRead(f"File {fs_path} shrank while being archived", fs_path)
                remaining -= len(chunk)
                # Final chunk is padded with literal zeros up to the block boundary.
                self._write(pad_block(chunk), f"file {fs_path}")
        self.headers.append(hdr)
        return hdr

    def finalize(self):
        """Write the two zero blocks that terminate the archive."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        self._write(b"\x00" * FOOTER_SIZE, "footer")
        try:
            self.f.truncate()
            self.f.flush()
        except OSError as exc:
            raise ShortWrite(f"Failed to finish archive {self.out_path}: {exc.strerror or exc}", self.out_path) from exc

    # internals
    def _seek_to_footer(self):
        assert self.f is not None
        try:
            size = os.fstat(self.f.fileno()).st_size
            if size < FOOTER_SIZE:
                raise SeekFailed(
                    f"Archive {self.out_path} is {size} bytes, too short to hold a footer", self.out_path
                )
            self.f.seek(-FOOTER_SIZE, os.SEEK_END)
        except OSError as exc:
            raise SeekFailed(
                f"Failed to seek to start of archive footer {self.out_path}: {exc.strerror or exc}", self.out_path
            ) from exc

    def _write(self, data: bytes, what: str):
        assert self.f is not None
        try:
            n = self.f.write(data)
        except OSError as exc:
            raise ShortWrite(
                f"Failed to write {what} to archive {self.out_path}: {exc.strerror or exc}", self.out_path
            ) from exc
        if n != len(data):
            raise ShortWrite(f"Short write of {what} to archive {self.out_path} ({n}/{len(data)} bytes)", self.out_path)


def write_entries(
    archive: str,
    paths: Iterable[str],
    mode: WriteMode,
    *,
    progress: Optional[Callable[[Header], None]] = None,
    lookup: Optional[IdentityLookup] = None,
    strict_names: bool = False,
) -> List[Header]:
    """Write every path in order, then the footer. Any failure aborts the whole call.

    Returns:
        The headers written, in archive order.
    """
    with ArchiveWriter(archive, mode, lookup=lookup, strict_names=strict_names) as w:
        for p in paths:
            hdr = w.add_file(p)
            if progress is not None:
                progress(hdr)
        w.finalize()
        return list(w.headers)
