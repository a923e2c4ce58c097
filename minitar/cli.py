from __future__ import annotations

import argparse
import stat
import sys
import time
from typing import List

from minitar import archive as _archive
from minitar.errors import MinitarError
from minitar.header import Header


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _progress(verb: str, quiet: bool):
    if quiet:
        return None

    def _report(hdr: Header) -> None:
        print(f" {verb}: {hdr.name}")

    return _report


def _format_long(hdr: Header) -> str:
    """Render one ``tar tv``-style line: mode owner/group size mtime name."""
    perms = stat.filemode(stat.S_IFREG | hdr.mode)
    owner = f"{hdr.uname or hdr.uid}/{hdr.gname or hdr.gid}"
    when = time.strftime("%Y-%m-%d %H:%M", time.localtime(hdr.mtime))
    return f"{perms} {owner} {hdr.size:>9} {when} {hdr.name}"


def cmd_create(archive: str, inputs: List[str], *, verbose: bool = False) -> bool:
    """Create (or overwrite) an archive from regular files.

    Args:
        archive: Path of the archive to write.
        inputs: Files to store, in order. May be empty.
        verbose: Print one line per stored entry.
    """
    _archive.create(archive, inputs, progress=_progress("adding", not verbose))
    return True


def cmd_append(archive: str, inputs: List[str], *, verbose: bool = False) -> bool:
    """Append files to an existing archive, rewriting its footer."""
    _archive.append(archive, inputs, progress=_progress("appending", not verbose))
    return True


def cmd_update(archive: str, inputs: List[str], *, verbose: bool = False) -> bool:
    """Append fresh copies of files that the archive already contains."""
    _archive.update(archive, inputs, progress=_progress("updating", not verbose))
    return True


def cmd_list(archive: str, *, long: bool = False) -> bool:
    """Print member names in archive order, one per line.

    Args:
        archive: Archive path.
        long: Print mode, owner/group, size and mtime before each name.
    """
    if long:
        for hdr in _archive.list_headers(archive):
            print(_format_long(hdr))
    else:
        for name in _archive.list_names(archive):
            print(name)
    return True


def cmd_extract(archive: str, *, outdir: str = ".", preserve: bool = False, verbose: bool = False) -> bool:
    """Extract every member; the last copy of a repeated name wins."""
    _archive.extract(archive, outdir, preserve=preserve, progress=_progress("extracting", not verbose))
    return True


def cmd_verify(archive: str) -> bool:
    """Check every header checksum; print OK or the offending headers."""
    bad = _archive.verify(archive)
    if not bad:
        print("OK")
        return True
    for offset, name in bad:
        print(f"BAD CHECKSUM at offset {offset}: {name}")
    return False


def main(argv: List[str] | None = None):
    ap = _ArgumentParser(
        prog="minitar",
        description="Create, append to, update, list and extract USTAR archives of regular files",
        epilog="Only regular files are archived. Later copies of a name shadow earlier ones on extract.",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Print one line per processed entry")
    sub = ap.add_subparsers(dest="cmd", required=True, parser_class=_ArgumentParser)

    ap_create = sub.add_parser("create", aliases=["c"], help="Create archive")
    ap_create.add_argument("archive", help="Archive path")
    ap_create.add_argument("inputs", nargs="*", help="Input files")

    ap_append = sub.add_parser("append", aliases=["a"], help="Append files to an existing archive")
    ap_append.add_argument("archive", help="Archive path")
    ap_append.add_argument("inputs", nargs="*", help="Input files to append")

    ap_update = sub.add_parser("update", aliases=["u"], help="Append newer copies of files already in the archive")
    ap_update.add_argument("archive", help="Archive path")
    ap_update.add_argument("inputs", nargs="*", help="Input files to update")

    ap_list = sub.add_parser("list", aliases=["t"], help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("--long", "-l", action="store_true", help="Show mode, owner, size and mtime")

    ap_extract = sub.add_parser("extract", aliases=["x"], help="Extract files")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--preserve", action="store_true", help="Restore stored mode and mtime")

    ap_verify = sub.add_parser("verify", help="Verify header checksums")
    ap_verify.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    try:
        if args.cmd in ("create", "c"):
            ok = cmd_create(args.archive, args.inputs, verbose=args.verbose)
        elif args.cmd in ("append", "a"):
            ok = cmd_append(args.archive, args.inputs, verbose=args.verbose)
        elif args.cmd in ("update", "u"):
            ok = cmd_update(args.archive, args.inputs, verbose=args.verbose)
        elif args.cmd in ("list", "t"):
            ok = cmd_list(args.archive, long=args.long)
        elif args.cmd in ("extract", "x"):
            ok = cmd_extract(args.archive, outdir=args.outdir, preserve=args.preserve, verbose=args.verbose)
        elif args.cmd == "verify":
            ok = cmd_verify(args.archive)
        else:
            raise RuntimeError("Unknown command")
    except MinitarError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
