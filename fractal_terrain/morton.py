"""Z-order (Morton) indexing of leaf grid cells.

Bit ``2k`` of an index is bit ``k`` of ``x`` and bit ``2k + 1`` is bit ``k``
of ``y``. Because the leaf recursion visits children in bl, br, tl, tr order,
the n-th terminal cell it reaches is exactly the cell whose Morton index is
n.
"""
from __future__ import annotations

from typing import Tuple


def reverse_bits(value: int, length: int) -> int:
    """Reverse the lowest ``length`` bits of ``value``."""

    result = 0
    for _ in range(length):
        result = (result << 1) | (value & 1)
        value >>= 1
    return result


def get_index(x: int, y: int) -> int:
    """Morton index of cell ``(x, y)``; ``-1`` for negative coordinates."""

    if x < 0 or y < 0:
        return -1
    acc = 0
    digits = 0
    while x > 0 or y > 0:
        acc = (acc << 1) | (x & 1)
        acc = (acc << 1) | (y & 1)
        digits += 2
        x >>= 1
        y >>= 1
    return reverse_bits(acc, digits)


def get_coord(index: int) -> Tuple[int, int]:
    """Inverse of :func:`get_index`."""

    if index < 0:
        raise ValueError("Morton index must be non-negative")
    x = 0
    y = 0
    digits = 0
    while index > 0:
        x = (x << 1) | (index & 1)
        index >>= 1
        y = (y << 1) | (index & 1)
        index >>= 1
        digits += 1
    return reverse_bits(x, digits), reverse_bits(y, digits)
