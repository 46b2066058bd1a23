"""Tests for Z-order cell indexing."""
from __future__ import annotations

import pytest

from fractal_terrain.morton import get_coord, get_index, reverse_bits


def test_small_indices_follow_z_order() -> None:
    assert [get_index(x, y) for y in range(2) for x in range(2)] == [0, 1, 2, 3]
    assert get_index(2, 0) == 4
    assert get_index(3, 5) == 0b100111


def test_index_and_coord_are_inverse() -> None:
    seen = set()
    for x in range(32):
        for y in range(32):
            index = get_index(x, y)
            assert get_coord(index) == (x, y)
            seen.add(index)
    assert seen == set(range(32 * 32))


def test_negative_inputs() -> None:
    assert get_index(-1, 3) == -1
    assert get_index(2, -4) == -1
    with pytest.raises(ValueError):
        get_coord(-1)


def test_reverse_bits() -> None:
    assert reverse_bits(0b0011, 4) == 0b1100
    assert reverse_bits(0b1, 3) == 0b100
    assert reverse_bits(0, 5) == 0
