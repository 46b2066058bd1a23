"""Lightweight 3D vector math utilities.

Terrain positions, edge deltas and normals are all carried as immutable
``Vector3`` values. ``y`` is the height axis; the planar helpers work on
``(x, z)`` only.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, Optional


@dataclass(frozen=True)
class Vector3:
    """Immutable 3D vector with a handful of math helpers."""

    x: float
    y: float
    z: float

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> "Vector3":
        return Vector3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vector3":
        return Vector3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector3") -> "Vector3":
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self, fallback: Optional["Vector3"] = None) -> "Vector3":
        length = self.length()
        if length == 0.0:
            if fallback is None:
                raise ValueError("Cannot normalize zero-length vector")
            return fallback
        return self / length

    def with_y(self, y: float) -> "Vector3":
        return Vector3(self.x, float(y), self.z)

    def planar_distance_sq(self, other: "Vector3") -> float:
        dx = self.x - other.x
        dz = self.z - other.z
        return dx * dx + dz * dz

    def planar_distance(self, other: "Vector3") -> float:
        return math.sqrt(self.planar_distance_sq(other))

    @staticmethod
    def zero() -> "Vector3":
        return Vector3(0.0, 0.0, 0.0)

    @staticmethod
    def from_iter(values: Iterable[float]) -> "Vector3":
        x, y, z = values
        return Vector3(float(x), float(y), float(z))


def average(*points: Vector3) -> Vector3:
    """Arithmetic mean of the given points."""

    total = Vector3.zero()
    for point in points:
        total = total + point
    return total / len(points)


def triangle_normal(a: Vector3, b: Vector3, c: Vector3) -> Vector3:
    """Unit normal of triangle ``abc`` following the right-hand rule."""

    return (b - a).cross(c - a).normalized(Vector3.zero())
