# Block geometry
BLOCK_SIZE = 512
FOOTER_BLOCKS = 2
FOOTER_SIZE = BLOCK_SIZE * FOOTER_BLOCKS  # 1024 zero bytes

# Magic and version
USTAR_MAGIC = b"ustar\x00"  # 6 bytes: "ustar\0"
USTAR_VERSION = b"00"       # 2 bytes, not NUL-terminated

# Type flags (only REGTYPE is ever written)
REGTYPE = b"0"
AREGTYPE = b"\x00"

# Field widths
NAME_SIZE = 100
UNAME_SIZE = 32
GNAME_SIZE = 32
CHKSUM_OFFSET = 148
CHKSUM_SIZE = 8

# Default permission-bit mask stored in the mode field
MODE_MASK = 0o7777
