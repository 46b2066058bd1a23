"""Pytest configuration for fractal terrain tests."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# //1.- Ensure repository root is available on the Python path for package imports.
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fractal_terrain.biome import Biome, BiomeContainer, BiomeWeightField  # noqa: E402
from fractal_terrain.noise import PerlinNoise, SeededRNG  # noqa: E402
from fractal_terrain.patch import TerrainContext  # noqa: E402
from fractal_terrain.vector import Vector3  # noqa: E402


# //2.- Build small terrain contexts so tests can tune biomes and depth thresholds.
def build_context(
    seed: int = 1337,
    biomes=None,
    biome_depth: int = 2,
    roughness_base: float = 2.0,
) -> TerrainContext:
    if biomes is None:
        biomes = (
            Biome(Vector3(0.3, 0.6, 0.2), amplitude=4.0, foliage_density=0.6),
            Biome(Vector3(0.8, 0.7, 0.5), amplitude=1.0, foliage_density=0.95),
            Biome(Vector3(0.6, 0.6, 0.6), amplitude=8.0, foliage_density=0.9),
        )
    container = BiomeContainer(biomes)
    field = BiomeWeightField(PerlinNoise(), len(container), scale=32.0)
    return TerrainContext(
        rng=SeededRNG(seed, roughness_base=roughness_base),
        biomes=container,
        biome_field=field,
        biome_depth=biome_depth,
    )


@pytest.fixture
def context() -> TerrainContext:
    return build_context()


@pytest.fixture
def context_factory():
    return build_context
