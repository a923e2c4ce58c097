"""
minitar — a small USTAR archive tool.

Features:

- Bit-exact USTAR headers for regular files (octal fields, checksum, magic/version).
- Create, append, update, list and extract operations over a single archive file.
- Appends overwrite the trailing footer in place, so archives never carry an interior footer.
- Position-based walking: entries are located from declared sizes only, and archives whose
  sizes do not tile exactly to the footer are rejected as malformed.

Only regular files are archived; directories, links and PAX headers are not supported.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "header",
    "padding",
    "writer",
    "reader",
    "archive",
]

# Importable programmatic API is available via minitar.archive (create/append/update/
# list_names/extract) and the lower-level minitar.writer/minitar.reader classes.
