"""Biome definitions and the blending operators that mix them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence, Tuple

import numpy as np

from .noise import PerlinNoise
from .vector import Vector3

Weights = Tuple[float, ...]


# //1.- Describe a single biome as an immutable value object.
@dataclass(frozen=True)
class Biome:
    color: Vector3
    amplitude: float
    foliage_density: float = 1.0

    def __post_init__(self) -> None:
        if self.amplitude < 0.0:
            raise ValueError("biome amplitude must be >= 0")
        if not 0.0 < self.foliage_density <= 1.0:
            raise ValueError("foliage_density must be within (0, 1]")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "Biome":
        color = payload["color"]
        if not isinstance(color, Sequence) or len(color) != 3:
            raise ValueError("biome color must be a three element array")
        return cls(
            color=Vector3.from_iter(color),
            amplitude=float(payload["amplitude"]),
            foliage_density=float(payload.get("foliage_density", payload.get("foliage", 1.0))),
        )


# //2.- Hold the ordered biome list whose order defines weight vector indices.
class BiomeContainer:
    def __init__(self, biomes: Iterable[Biome]) -> None:
        self._biomes: Tuple[Biome, ...] = tuple(biomes)
        if not self._biomes:
            raise ValueError("BiomeContainer requires at least one biome")
        self._colors = np.array([tuple(biome.color) for biome in self._biomes], dtype=np.float64)
        self._amplitudes = np.array([biome.amplitude for biome in self._biomes], dtype=np.float64)
        self._foliage = np.array([biome.foliage_density for biome in self._biomes], dtype=np.float64)

    def __len__(self) -> int:
        return len(self._biomes)

    def __getitem__(self, index: int) -> Biome:
        return self._biomes[index]

    @property
    def biomes(self) -> Tuple[Biome, ...]:
        return self._biomes

    def biome_count(self) -> int:
        return len(self._biomes)

    def create_interpolated_biome(self, weights: Sequence[float]) -> Biome:
        """Blend the biomes with ``weights``.

        Colour and amplitude use the plain weighted average. Foliage density
        uses softmax weights instead, so a locally dominant biome keeps
        control of vegetation while borders still fade smoothly.
        """

        if len(weights) != len(self._biomes):
            raise ValueError(
                f"Incorrect biome weight length: expected {len(self._biomes)}, got {len(weights)}"
            )
        w = np.asarray(weights, dtype=np.float64)
        total = float(w.sum())
        if total <= 0.0:
            raise ValueError("biome weights must have a positive sum")

        color = (w @ self._colors) / total
        amplitude = float(w @ self._amplitudes) / total

        # Shifting by the max leaves softmax unchanged and avoids overflow.
        soft = np.exp(w - w.max())
        foliage = float(soft @ self._foliage) / float(soft.sum())
        foliage = min(foliage, 1.0)

        return Biome(
            color=Vector3(float(color[0]), float(color[1]), float(color[2])),
            amplitude=amplitude,
            foliage_density=foliage,
        )


# //3.- Derive per-position weight vectors from smooth gradient noise.
@dataclass(frozen=True)
class BiomeWeightField:
    noise: PerlinNoise
    biome_count: int
    scale: float = 64.0
    channel_offset: float = 17.31
    floor: float = 0.01

    def __post_init__(self) -> None:
        if self.scale <= 0.0:
            raise ValueError("biome noise scale must be positive")
        if self.floor <= 0.0:
            raise ValueError("biome weight floor must be positive")

    def weights_at(self, point: Vector3) -> Weights:
        sx = point.x / self.scale
        sz = point.z / self.scale
        return tuple(
            max(self.noise.noise(sx, index * self.channel_offset, sz), self.floor)
            for index in range(self.biome_count)
        )


# //4.- Bilinearly interpolate four corner weight vectors across a patch.
class BiomeQuad:
    __slots__ = ("container", "bl", "br", "tl", "tr", "x1", "y1", "x2", "y2")

    def __init__(
        self,
        container: BiomeContainer,
        bl: Sequence[float],
        br: Sequence[float],
        tl: Sequence[float],
        tr: Sequence[float],
        lower: Vector3,
        upper: Vector3,
    ) -> None:
        for corner in (bl, br, tl, tr):
            if len(corner) != len(container):
                raise ValueError("corner weight vectors must match the biome count")
        self.container = container
        self.bl: Weights = tuple(float(value) for value in bl)
        self.br: Weights = tuple(float(value) for value in br)
        self.tl: Weights = tuple(float(value) for value in tl)
        self.tr: Weights = tuple(float(value) for value in tr)
        # World z plays the role of the second interpolation axis.
        self.x1, self.y1 = float(lower.x), float(lower.z)
        self.x2, self.y2 = float(upper.x), float(upper.z)
        if self.x2 == self.x1 or self.y2 == self.y1:
            raise ValueError("BiomeQuad extents must have non-zero area")

    @classmethod
    def from_field(
        cls,
        field: BiomeWeightField,
        container: BiomeContainer,
        bl: Vector3,
        br: Vector3,
        tl: Vector3,
        tr: Vector3,
    ) -> "BiomeQuad":
        return cls(
            container,
            field.weights_at(bl),
            field.weights_at(br),
            field.weights_at(tl),
            field.weights_at(tr),
            lower=bl,
            upper=tr,
        )

    def bilerp(self, point: Vector3) -> Weights:
        x, y = point.x, point.z
        dx1 = x - self.x1
        dx2 = self.x2 - x
        dy1 = y - self.y1
        dy2 = self.y2 - y
        c = 1.0 / ((self.x2 - self.x1) * (self.y2 - self.y1))
        c11 = c * dx2 * dy2
        c21 = c * dx1 * dy2
        c12 = c * dx2 * dy1
        c22 = c * dx1 * dy1
        return tuple(
            q11 * c11 + q21 * c21 + q12 * c12 + q22 * c22
            for q11, q21, q12, q22 in zip(self.bl, self.br, self.tl, self.tr)
        )

    def biome_at(self, point: Vector3) -> Biome:
        return self.container.create_interpolated_biome(self.bilerp(point))
