"""Fractal terrain package.

Streams an unbounded midpoint-displacement heightfield around a moving
observer. Heights are a pure function of position and depth, the quadtree
trades detail for distance through a policy table, and the root grows
outward losslessly whenever the observer nears its edge.
"""

from .vector import Vector3
from .noise import PerlinNoise, SeededRNG
from .biome import Biome, BiomeContainer, BiomeQuad, BiomeWeightField
from .patch import Patch, Quadrant, TerrainContext
from .surface import CollisionResult, RenderContext, TerrainSurface, UnloadedRegionError
from .leaf import BufferedFractal, LeafSettings, MeshBuffers, VegetationInstance
from .lod import ChildSlot, FractalNode, LodPolicy, LodPolicyTable, SlotKind, TreeStats
from .settings import TerrainSettings, load_terrain_settings
from .streaming import TerrainStreamer, build_terrain

__all__ = [
    "Vector3",
    "PerlinNoise",
    "SeededRNG",
    "Biome",
    "BiomeContainer",
    "BiomeQuad",
    "BiomeWeightField",
    "Patch",
    "Quadrant",
    "TerrainContext",
    "CollisionResult",
    "RenderContext",
    "TerrainSurface",
    "UnloadedRegionError",
    "BufferedFractal",
    "LeafSettings",
    "MeshBuffers",
    "VegetationInstance",
    "ChildSlot",
    "FractalNode",
    "LodPolicy",
    "LodPolicyTable",
    "SlotKind",
    "TreeStats",
    "TerrainSettings",
    "load_terrain_settings",
    "TerrainStreamer",
    "build_terrain",
]
