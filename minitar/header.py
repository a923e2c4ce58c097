from __future__ import annotations

import os
import re
import stat
import struct
import sys
from dataclasses import dataclass
from typing import Optional

from .constants import (
    AREGTYPE,
    BLOCK_SIZE,
    CHKSUM_OFFSET,
    CHKSUM_SIZE,
    GNAME_SIZE,
    MODE_MASK,
    NAME_SIZE,
    REGTYPE,
    UNAME_SIZE,
    USTAR_MAGIC,
    USTAR_VERSION,
)
from .errors import (
    FieldOverflow,
    IdentityUnresolved,
    MalformedArchive,
    MetadataUnavailable,
    NameTooLong,
)
from .identity import DEFAULT_LOOKUP, IdentityLookup


# POSIX ustar header (fixed 512 bytes)
# struct: 100s 8s 8s 8s 12s 12s 8s c 100s 6s 2s 32s 32s 8s 8s 155s 12s
#  - name[100], mode[8], uid[8], gid[8], size[12], mtime[12]
#  - chksum[8], typeflag[1], linkname[100]
#  - magic[6], version[2], uname[32], gname[32]
#  - devmajor[8], devminor[8], prefix[155], pad[12]
_HDR_STRUCT = struct.Struct("100s8s8s8s12s12s8sc100s6s2s32s32s8s8s155s12s")
assert _HDR_STRUCT.size == BLOCK_SIZE

_OCTAL_RE = re.compile(rb"[0-7]*")


def _octal(value: int, width: int, field: str) -> bytes:
    """Render ``value`` as zero-padded octal digits plus a trailing NUL."""
    digits = width - 1
    if value < 0:
        raise FieldOverflow(f"{field} value {value} is negative")
    text = "%0*o" % (digits, value)
    if len(text) > digits:
        raise FieldOverflow(f"{field} value {value} does not fit {digits} octal digits")
    return text.encode("ascii") + b"\x00"


def _parse_octal(field: bytes, name: str) -> int:
    # strtol(field, NULL, 8): skip leading blanks, stop at the first non-octal byte
    text = field.lstrip(b" ")
    digits = _OCTAL_RE.match(text).group()
    if digits:
        return int(digits, 8)
    if text[:1] in (b"", b"\x00", b" "):
        return 0
    raise MalformedArchive(f"Header field {name} is not octal: {field!r}")


def _fixed(value: str, width: int) -> bytes:
    return os.fsencode(value)[:width]


def _cstr(field: bytes) -> str:
    return os.fsdecode(field.split(b"\x00", 1)[0])


@dataclass
class Header:
    name: str
    mode: int = 0
    uid: int = 0
    gid: int = 0
    size: int = 0
    mtime: int = 0
    typeflag: bytes = REGTYPE
    linkname: str = ""
    magic: bytes = USTAR_MAGIC
    version: bytes = USTAR_VERSION
    uname: str = ""
    gname: str = ""
    devmajor: int = 0
    devminor: int = 0
    prefix: str = ""
    chksum: int = 0

    @property
    def is_regular(self) -> bool:
        return self.typeflag in (REGTYPE, AREGTYPE)

    def pack(self) -> bytes:
        """Serialize to a 512-byte block and fill in the checksum."""
        pre = _HDR_STRUCT.pack(
            _fixed(self.name, NAME_SIZE),
            _octal(self.mode, 8, "mode"),
            _octal(self.uid, 8, "uid"),
            _octal(self.gid, 8, "gid"),
            _octal(self.size, 12, "size"),
            _octal(self.mtime, 12, "mtime"),
            b" " * CHKSUM_SIZE,
            self.typeflag,
            _fixed(self.linkname, NAME_SIZE),
            self.magic,
            self.version,
            _fixed(self.uname, UNAME_SIZE),
            _fixed(self.gname, GNAME_SIZE),
            _octal(self.devmajor, 8, "devmajor"),
            _octal(self.devminor, 8, "devminor"),
            _fixed(self.prefix, 155),
            b"",
        )
        self.chksum = sum(pre)
        return pre[:CHKSUM_OFFSET] + _octal(self.chksum, CHKSUM_SIZE, "chksum") + pre[CHKSUM_OFFSET + CHKSUM_SIZE :]


def compute_checksum(block: bytes) -> int:
    """Unsigned byte sum with the checksum field counted as eight spaces."""
    if len(block) != BLOCK_SIZE:
        raise ValueError("header block must be 512 bytes")
    return sum(block[:CHKSUM_OFFSET]) + 0x20 * CHKSUM_SIZE + sum(block[CHKSUM_OFFSET + CHKSUM_SIZE :])


def validate(block: bytes) -> bool:
    if len(block) != BLOCK_SIZE:
        return False
    try:
        stored = _parse_octal(block[CHKSUM_OFFSET : CHKSUM_OFFSET + CHKSUM_SIZE], "chksum")
    except MalformedArchive:
        return False
    return compute_checksum(block) == stored


def decode(block: bytes) -> Header:
    """Parse a 512-byte block. The checksum is read but not checked; see ``validate``."""
    if len(block) != BLOCK_SIZE:
        raise MalformedArchive(f"Header block is {len(block)} bytes, expected {BLOCK_SIZE}")
    (
        name,
        mode,
        uid,
        gid,
        size,
        mtime,
        chksum,
        typeflag,
        linkname,
        magic,
        version,
        uname,
        gname,
        devmajor,
        devminor,
        prefix,
        _pad,
    ) = _HDR_STRUCT.unpack(block)
    return Header(
        name=_cstr(name),
        mode=_parse_octal(mode, "mode"),
        uid=_parse_octal(uid, "uid"),
        gid=_parse_octal(gid, "gid"),
        size=_parse_octal(size, "size"),
        mtime=_parse_octal(mtime, "mtime"),
        typeflag=typeflag,
        linkname=_cstr(linkname),
        magic=magic,
        version=version,
        uname=_cstr(uname),
        gname=_cstr(gname),
        devmajor=_parse_octal(devmajor, "devmajor"),
        devminor=_parse_octal(devminor, "devminor"),
        prefix=_cstr(prefix),
        chksum=_parse_octal(chksum, "chksum"),
    )


def stored_name(path: str, *, strict: bool = False) -> str:
    """Return the name ``path`` is recorded under in the 100-byte name field."""
    raw = os.fsencode(path)
    if len(raw) <= NAME_SIZE:
        return path
    if strict:
        raise NameTooLong(f"Name exceeds {NAME_SIZE} bytes: {path}", path)
    return os.fsdecode(raw[:NAME_SIZE])


def encode(path: str, *, lookup: Optional[IdentityLookup] = None, strict_names: bool = False) -> Header:
    """Build a header from the current metadata of the regular file at ``path``.

    Args:
        path: Filesystem path; also recorded as the member name.
        lookup: Owner/group name resolver. Defaults to the pwd/grp databases.
        strict_names: Raise NameTooLong instead of truncating names over 100 bytes.

    Raises:
        MetadataUnavailable: the file cannot be stat'ed or is not a regular file.
        IdentityUnresolved: the owner or group id has no name.
        NameTooLong: ``strict_names`` is set and the name does not fit.
        FieldOverflow: a numeric value does not fit its octal field.
    """
    try:
        st = os.stat(path)
    except OSError as exc:
        raise MetadataUnavailable(f"Failed to stat file {path}: {exc.strerror or exc}", path) from exc
    if not stat.S_ISREG(st.st_mode):
        raise MetadataUnavailable(f"Not a regular file: {path}", path)

    name = stored_name(path, strict=strict_names)
    if name != path:
        print(f"Warning: name truncated to {NAME_SIZE} bytes: {path}", file=sys.stderr)

    lookup = lookup or DEFAULT_LOOKUP
    try:
        uname = lookup.user_name(st.st_uid)
    except IdentityUnresolved as exc:
        raise IdentityUnresolved(f"Failed to look up owner name of file {path}: {exc}", path) from exc
    try:
        gname = lookup.group_name(st.st_gid)
    except IdentityUnresolved as exc:
        raise IdentityUnresolved(f"Failed to look up group name of file {path}: {exc}", path) from exc

    hdr = Header(
        name=name,
        mode=st.st_mode & MODE_MASK,
        uid=st.st_uid,
        gid=st.st_gid,
        size=st.st_size,
        mtime=int(st.st_mtime),
        uname=uname,
        gname=gname,
        devmajor=os.major(st.st_dev),
        devminor=os.minor(st.st_dev),
    )
    try:
        hdr.pack()
    except FieldOverflow as exc:
        raise FieldOverflow(f"Cannot encode header for {path}: {exc}", path) from exc
    return hdr
