from __future__ import annotations

from .constants import BLOCK_SIZE


def blocks_for(size: int) -> int:
    """Number of 512-byte blocks needed to hold ``size`` bytes."""
    if size < 0:
        raise ValueError("size must be non-negative")
    return (size + BLOCK_SIZE - 1) // BLOCK_SIZE


def padded_size(size: int) -> int:
    return blocks_for(size) * BLOCK_SIZE


def padding_for(size: int) -> int:
    """Zero bytes appended after ``size`` bytes of data to reach a block boundary."""
    return padded_size(size) - size


def pad_block(chunk: bytes) -> bytes:
    if len(chunk) > BLOCK_SIZE:
        raise ValueError("chunk larger than one block")
    return chunk + b"\x00" * (BLOCK_SIZE - len(chunk))
