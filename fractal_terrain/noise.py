"""Deterministic noise helpers used throughout the terrain.

Two families live here. ``SeededRNG`` turns a planar position into a
reproducible pseudo-random draw: it keeps no state besides the global seed,
so the displacement of a point never depends on the order in which the
quadtree happened to reach it. ``PerlinNoise`` is classic improved gradient
noise and only feeds the smooth biome weight fields.
"""
from __future__ import annotations

import math
import struct
from typing import List, Optional

import numpy as np

from .vector import Vector3

_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF
_INV_2_32 = 1.0 / 4294967296.0
# Box-Muller takes log(u); u == 0 would diverge.
_MIN_UNIFORM = 1e-12

DEFAULT_HASH_RESOLUTION = 2 ** 20


# -- Hash helpers ---------------------------------------------------------

def hash_float(value: float) -> int:
    """Map a float onto an int; integral values map onto themselves."""

    number = float(value)
    if number.is_integer():
        return int(number)
    low, high = struct.unpack("<ii", struct.pack("<d", number))
    return low ^ high


def _fold(value: int) -> int:
    value &= _MASK64
    return (value ^ (value >> 32)) & _MASK32


def _avalanche(value: int) -> int:
    value ^= value >> 16
    value = (value * 0x7FEB352D) & _MASK32
    value ^= value >> 15
    value = (value * 0x846CA68B) & _MASK32
    value ^= value >> 16
    return value


def hash_combine(lhs: int, rhs: int) -> int:
    """Combine two integers into a well mixed 32-bit hash."""

    lhs = _fold(lhs)
    value = lhs ^ (_fold(rhs) + 0x9E3779B9 + ((lhs << 6) & _MASK32) + (lhs >> 2))
    return _avalanche(value & _MASK32)


# -- Position keyed random numbers ----------------------------------------

class SeededRNG:
    """Pure position-keyed random source.

    Every method is a function of its arguments and the seed given at
    construction. Only the planar ``(x, z)`` coordinates take part in the
    key; heights are ignored so a point hashes identically before and after
    it has been displaced. Coordinates are snapped to a ``1 / hash_resolution``
    grid first, which keeps keys stable when the same point is reached
    through different float arithmetic.
    """

    def __init__(
        self,
        seed: int,
        roughness_base: float = 2.0,
        hash_resolution: int = DEFAULT_HASH_RESOLUTION,
    ) -> None:
        if roughness_base < 1.0:
            raise ValueError("roughness_base must be >= 1")
        if hash_resolution <= 0:
            raise ValueError("hash_resolution must be positive")
        self.seed = seed
        self.global_seed = hash_float(seed)
        self.roughness_base = float(roughness_base)
        self._hash_resolution = float(hash_resolution)

    def _quantize(self, value: float) -> int:
        return int(round(value * self._hash_resolution))

    def seeded_random(self, pos: Vector3, local_seed: int = 0) -> float:
        """Uniform draw in ``[0, 1)`` keyed by ``pos`` and ``local_seed``."""

        seed = hash_combine(self.global_seed, local_seed)
        seed = hash_combine(seed, self._quantize(pos.x))
        seed = hash_combine(seed, self._quantize(pos.z))
        return seed * _INV_2_32

    def seeded_gauss(self, pos: Vector3, local_seed: int = 0) -> float:
        """Standard normal draw via Box-Muller."""

        rand_a = self.seeded_random(pos, local_seed)
        shifted = pos + Vector3(rand_a, rand_a, rand_a)
        rand_b = self.seeded_random(shifted, local_seed)
        rand_a = max(rand_a, _MIN_UNIFORM)
        return math.sqrt(-2.0 * math.log(rand_a)) * math.cos(2.0 * math.pi * rand_b)

    def exp_rand(
        self,
        pos: Vector3,
        depth: int,
        local_seed: int = 1,
        amplitude: float = 1.0,
    ) -> float:
        """Gaussian displacement that shrinks by ``roughness_base`` per level."""

        return amplitude * self.seeded_gauss(pos, local_seed) / self.roughness_base ** depth


# -- Gradient noise -------------------------------------------------------

_REFERENCE_PERMUTATION = (
    151, 160, 137, 91, 90, 15, 131, 13, 201, 95, 96, 53, 194, 233, 7, 225,
    140, 36, 103, 30, 69, 142, 8, 99, 37, 240, 21, 10, 23, 190, 6, 148,
    247, 120, 234, 75, 0, 26, 197, 62, 94, 252, 219, 203, 117, 35, 11, 32,
    57, 177, 33, 88, 237, 149, 56, 87, 174, 20, 125, 136, 171, 168, 68, 175,
    74, 165, 71, 134, 139, 48, 27, 166, 77, 146, 158, 231, 83, 111, 229, 122,
    60, 211, 133, 230, 220, 105, 92, 41, 55, 46, 245, 40, 244, 102, 143, 54,
    65, 25, 63, 161, 1, 216, 80, 73, 209, 76, 132, 187, 208, 89, 18, 169,
    200, 196, 135, 130, 116, 188, 159, 86, 164, 100, 109, 198, 173, 186, 3, 64,
    52, 217, 226, 250, 124, 123, 5, 202, 38, 147, 118, 126, 255, 82, 85, 212,
    207, 206, 59, 227, 47, 16, 58, 17, 182, 189, 28, 42, 223, 183, 170, 213,
    119, 248, 152, 2, 44, 154, 163, 70, 221, 153, 101, 155, 167, 43, 172, 9,
    129, 22, 39, 253, 19, 98, 108, 110, 79, 113, 224, 232, 178, 185, 112, 104,
    218, 246, 97, 228, 251, 34, 242, 193, 238, 210, 144, 12, 191, 179, 162, 241,
    81, 51, 145, 235, 249, 14, 239, 107, 49, 192, 214, 31, 181, 199, 106, 157,
    184, 84, 204, 176, 115, 121, 50, 45, 127, 4, 150, 254, 138, 236, 205, 93,
    222, 114, 67, 29, 24, 72, 243, 141, 128, 195, 78, 66, 215, 61, 156, 180,
)


def _fade(t: float) -> float:
    return t * t * t * (t * (t * 6 - 15) + 10)


def _lerp(t: float, a: float, b: float) -> float:
    return a + t * (b - a)


def _grad(hash_value: int, x: float, y: float, z: float) -> float:
    h = hash_value & 15
    u = x if h < 8 else y
    if h < 4:
        v = y
    elif h in (12, 14):
        v = x
    else:
        v = z
    return (u if h & 1 == 0 else -u) + (v if h & 2 == 0 else -v)


class PerlinNoise:
    """Improved Perlin noise over a doubled 256-entry permutation table.

    ``seed=None`` keeps the reference permutation; an integer seed shuffles
    it with a numpy generator so different worlds get different fields.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        table = np.array(_REFERENCE_PERMUTATION, dtype=np.int64)
        if seed is not None:
            rng = np.random.default_rng(seed & _MASK64)
            table = rng.permutation(table)
        self.seed = seed
        self._p: List[int] = np.concatenate([table, table]).tolist()

    def noise_vec(self, point: Vector3) -> float:
        return self.noise(point.x, point.y, point.z)

    def noise(self, x: float, y: float, z: float) -> float:
        p = self._p
        fx, fy, fz = math.floor(x), math.floor(y), math.floor(z)
        xi, yi, zi = int(fx) & 255, int(fy) & 255, int(fz) & 255
        x -= fx
        y -= fy
        z -= fz
        u, v, w = _fade(x), _fade(y), _fade(z)

        a = p[xi] + yi
        aa = p[a] + zi
        ab = p[a + 1] + zi
        b = p[xi + 1] + yi
        ba = p[b] + zi
        bb = p[b + 1] + zi

        return _lerp(
            w,
            _lerp(
                v,
                _lerp(u, _grad(p[aa], x, y, z), _grad(p[ba], x - 1, y, z)),
                _lerp(u, _grad(p[ab], x, y - 1, z), _grad(p[bb], x - 1, y - 1, z)),
            ),
            _lerp(
                v,
                _lerp(u, _grad(p[aa + 1], x, y, z - 1), _grad(p[ba + 1], x - 1, y, z - 1)),
                _lerp(u, _grad(p[ab + 1], x, y - 1, z - 1), _grad(p[bb + 1], x - 1, y - 1, z - 1)),
            ),
        )
