from __future__ import annotations

import os
import sys
from typing import BinaryIO, Callable, Iterator, List, Optional, Tuple

from .constants import BLOCK_SIZE, FOOTER_SIZE
from .errors import ArchiveNotFound, MalformedArchive, SeekFailed, ShortRead, ShortWrite, SourceOpenFailed
from .header import Header, decode, validate
from .padding import blocks_for, padded_size, padding_for
from .pathutil import dest_path


def _safe_chmod(path: str, mode: Optional[int]) -> None:
    """Best-effort chmod that never raises."""
    if mode is None:
        return
    try:
        os.chmod(path, mode)
    except OSError as exc:
        print(f"Warning: failed to set mode on {path}: {exc}", file=sys.stderr)


def _safe_utime(path: str, mtime: Optional[int]) -> None:
    if mtime is None:
        return
    try:
        os.utime(path, (mtime, mtime))
    except OSError as exc:
        print(f"Warning: failed to set timestamps on {path}: {exc}", file=sys.stderr)


def remove_trailing_bytes(path: str, nbytes: int) -> None:
    """Truncate the last ``nbytes`` bytes off the file at ``path``."""
    try:
        fh = open(path, "r+b")
    except OSError as exc:
        raise SourceOpenFailed(f"Failed to open file {path}: {exc.strerror or exc}", path) from exc
    with fh:
        try:
            pos = fh.seek(-nbytes, os.SEEK_END)
        except OSError as exc:
            raise SeekFailed(f"Failed to seek in file {path}: {exc.strerror or exc}", path) from exc
        try:
            fh.truncate(pos)
        except OSError as exc:
            raise ShortWrite(f"Failed to truncate file {path}: {exc.strerror or exc}", path) from exc


class ArchiveReader:
    """Walks a USTAR archive header by header using only declared sizes."""

    def __init__(self, path: str):
        self.path = path
        self.f: Optional[BinaryIO] = None
        self.archive_size: int = 0
        self.footer_offset: int = 0

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        try:
            self.f = open(self.path, "rb")
        except OSError as exc:
            raise ArchiveNotFound(f"Failed to open archive file {self.path}: {exc.strerror or exc}", self.path) from exc
        try:
            self._load_geometry()
        except (MalformedArchive, SeekFailed):
            # Ensure file handle is closed on failure to avoid leaks
            self.close()
            raise

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def walk(self) -> Iterator[Tuple[int, Header]]:
        """Yield ``(offset, header)`` for each entry in archive order.

        The next header is always located arithmetically from the declared size,
        so callers may read (or not read) the data region between steps.
        """
        for offset, block in self._walk_blocks():
            yield offset, decode(block)

    def list(self) -> List[str]:
        return [hdr.name for _off, hdr in self.walk()]

    def headers(self) -> List[Header]:
        return [hdr for _off, hdr in self.walk()]

    def verify(self) -> List[Tuple[int, str]]:
        """Return ``(offset, name)`` for every header whose checksum does not match."""
        bad: List[Tuple[int, str]] = []
        for offset, block in self._walk_blocks():
            if not validate(block):
                try:
                    name = decode(block).name
                except MalformedArchive:
                    name = "?"
                bad.append((offset, name))
        return bad

    def extract(
        self,
        outdir: str = ".",
        *,
        preserve: bool = False,
        progress: Optional[Callable[[Header], None]] = None,
    ) -> List[str]:
        """Restore every entry under ``outdir``; later copies of a name overwrite earlier ones.

        Each entry's data blocks are copied verbatim, padding included, and the
        padding is then cut off by truncating ``padding_for(size)`` bytes.

        Args:
            outdir: Directory the member names are resolved against.
            preserve: Apply the stored mode and mtime (best effort).
            progress: Called with each header after it has been restored.

        Returns:
            The destination paths written, in archive order.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        written: List[str] = []
        for offset, hdr in self.walk():
            if not hdr.is_regular:
                raise MalformedArchive(
                    f"Refusing to extract {hdr.name!r}: type {hdr.typeflag!r} is not a regular file", self.path
                )
            try:
                dst = dest_path(outdir, hdr.name)
            except ValueError as exc:
                raise MalformedArchive(f"Refusing to extract {hdr.name!r}: {exc}", self.path) from exc
            parent = os.path.dirname(dst)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._seek(offset + BLOCK_SIZE)
            try:
                wf = open(dst, "wb")
            except OSError as exc:
                raise SourceOpenFailed(f"Failed to open file {dst}: {exc.strerror or exc}", dst) from exc
            with wf:
                for _ in range(blocks_for(hdr.size)):
                    block = self._read_block(f"{hdr.name} data")
                    try:
                        n = wf.write(block)
                    except OSError as exc:
                        raise ShortWrite(f"Failed to write {dst} from archive: {exc.strerror or exc}", dst) from exc
                    if n != BLOCK_SIZE:
                        raise ShortWrite(f"Short write to {dst} ({n}/{BLOCK_SIZE} bytes)", dst)
            remove_trailing_bytes(dst, padding_for(hdr.size))
            if preserve:
                _safe_chmod(dst, hdr.mode)
                _safe_utime(dst, hdr.mtime)
            written.append(dst)
            if progress is not None:
                progress(hdr)
        return written

    # internals
    def _load_geometry(self):
        assert self.f is not None
        try:
            self.archive_size = os.fstat(self.f.fileno()).st_size
        except OSError as exc:
            raise SeekFailed(f"Failed to size archive {self.path}: {exc.strerror or exc}", self.path) from exc
        if self.archive_size < FOOTER_SIZE or self.archive_size % BLOCK_SIZE:
            raise MalformedArchive(
                f"Archive {self.path} is {self.archive_size} bytes; expected a multiple of "
                f"{BLOCK_SIZE} of at least {FOOTER_SIZE}",
                self.path,
            )
        self.footer_offset = self.archive_size - FOOTER_SIZE

    def _walk_blocks(self) -> Iterator[Tuple[int, bytes]]:
        if self.f is None:
            raise RuntimeError("Archive not open")
        # Both ends are block aligned and no entry may cross the footer, so the
        # walk always lands exactly on footer_offset.
        pos = 0
        while pos < self.footer_offset:
            self._seek(pos)
            block = self._read_block("header")
            if not any(block):
                raise MalformedArchive(
                    f"Zero block at offset {pos} before the footer at {self.footer_offset} "
                    "(archive padded past its two-block footer?)",
                    self.path,
                )
            hdr = decode(block)
            data_end = pos + BLOCK_SIZE + padded_size(hdr.size)
            if data_end > self.footer_offset:
                raise MalformedArchive(
                    f"Entry {hdr.name!r} at offset {pos} declares {hdr.size} bytes, "
                    f"running past the footer at {self.footer_offset}",
                    self.path,
                )
            yield pos, block
            pos = data_end

    def _seek(self, offset: int):
        assert self.f is not None
        try:
            self.f.seek(offset)
        except OSError as exc:
            raise SeekFailed(f"Failed to seek to {offset} in archive {self.path}: {exc.strerror or exc}", self.path) from exc

    def _read_block(self, what: str) -> bytes:
        assert self.f is not None
        try:
            block = self.f.read(BLOCK_SIZE)
        except OSError as exc:
            raise ShortRead(f"Failed to read {what} from archive {self.path}: {exc.strerror or exc}", self.path) from exc
        if len(block) != BLOCK_SIZE:
            raise ShortRead(f"Unexpected end of archive {self.path} while reading {what}", self.path)
        return block
