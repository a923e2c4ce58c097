from __future__ import annotations

import os


def norm_path(p: str) -> str:
    """Normalize an archive member name to a relative path.

    Rules:
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments

    Backslashes are ordinary name bytes on POSIX and are left alone.
    """
    p = p.strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    if not parts:
        raise ValueError("Path is empty")
    return "/".join(parts)


def dest_path(outdir: str, name: str) -> str:
    """Join an archive member name under ``outdir`` without escaping it."""
    return os.path.join(outdir, *norm_path(name).split("/"))
