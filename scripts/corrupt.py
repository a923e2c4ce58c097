from __future__ import annotations

import argparse
import sys
from typing import Optional

from minitar.constants import BLOCK_SIZE
from minitar.errors import MinitarError
from minitar.reader import ArchiveReader


def flip_header_byte(archive: str, index: int, within: int, xor_val: int) -> int:
    """XOR one byte of the ``index``-th header block; return its archive offset."""
    with ArchiveReader(archive) as r:
        offsets = [off for off, _hdr in r.walk()]
    if index < 0 or index >= len(offsets):
        raise ValueError(f"Header index out of range (0..{len(offsets) - 1})")
    if within < 0 or within >= BLOCK_SIZE:
        raise ValueError(f"--within must be within the header block (0..{BLOCK_SIZE - 1})")
    off = offsets[index] + within
    with open(archive, "r+b") as f:
        f.seek(off)
        (b,) = f.read(1)
        f.seek(off)
        f.write(bytes([b ^ (xor_val & 0xFF)]))
    return off


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="corrupt", description="Damage tar archive headers for testing verify")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_hdr = sub.add_parser("header", help="Flip a byte inside the N-th header block")
    p_hdr.add_argument("archive", help="Path to archive")
    p_hdr.add_argument("--index", type=int, default=0, help="Header index (0-based, default 0)")
    p_hdr.add_argument("--within", type=int, default=0, help="Byte offset within the header (default 0, the name)")
    p_hdr.add_argument("--xor", type=lambda x: int(x, 0), default=0x01, help="XOR mask to apply (default 0x01)")

    args = ap.parse_args(argv)
    try:
        off = flip_header_byte(args.archive, args.index, args.within, args.xor)
    except (MinitarError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Flipped 1 byte in header {args.index} at archive offset {off}")


if __name__ == "__main__":
    main()
