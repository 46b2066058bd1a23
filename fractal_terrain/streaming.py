"""Observer driven terrain streaming helper."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .biome import BiomeContainer, BiomeWeightField
from .lod import FractalNode
from .noise import PerlinNoise, SeededRNG
from .patch import Patch, TerrainContext
from .settings import TerrainSettings
from .surface import CollisionResult, RenderContext
from .vector import Vector3

LOGGER = logging.getLogger(__name__)


@dataclass
class TerrainStreamer:
    root: FractalNode
    ticks: int = 0
    reroots: int = 0

    def update(self, observer: Vector3) -> None:
        depth_before = self.root.depth
        self.root.expand_and_prune_tree(observer)
        self.ticks += 1
        grown = depth_before - self.root.depth
        if grown:
            self.reroots += grown
            LOGGER.info(
                "Root grew %d level(s) at tick %d; edge is now %.1f",
                grown,
                self.ticks,
                self.root.patch.edge_length,
            )
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug("Tick %d: %s", self.ticks, self.root.stats().summary())

    def height_at(self, point: Vector3) -> float:
        return self.root.get_y_at(point)

    def resolve_collision(self, position: Vector3) -> CollisionResult:
        return self.root.update_position_given_collisions(position)

    def draw(self, render_context: RenderContext) -> None:
        self.root.draw(render_context)

    def summary(self) -> str:
        return (
            f"root depth {self.root.depth}, edge {self.root.patch.edge_length:.1f}, "
            f"{self.root.stats().summary()}"
        )


def build_terrain(settings: TerrainSettings) -> TerrainStreamer:
    """Wire the noise engine, biome model and root node from ``settings``."""

    rng = SeededRNG(
        settings.noise.seed,
        roughness_base=settings.noise.roughness_base,
        hash_resolution=settings.noise.hash_resolution,
    )
    biomes = BiomeContainer(settings.biomes.biomes)
    field = BiomeWeightField(
        noise=PerlinNoise(settings.biomes.noise_seed),
        biome_count=len(biomes),
        scale=settings.biomes.noise_scale,
        channel_offset=settings.biomes.channel_offset,
        floor=settings.biomes.weight_floor,
    )
    context = TerrainContext(
        rng=rng,
        biomes=biomes,
        biome_field=field,
        biome_depth=settings.biomes.biome_depth,
    )
    world = settings.world
    patch = Patch.square(world.root_center, world.root_size, context, world.root_depth)
    root = FractalNode(
        patch,
        world.root_depth,
        settings.lod,
        settings.leaf,
        is_root=True,
        collision_offset=world.collision_offset,
    )
    LOGGER.debug("Built terrain root: seed %d, edge %.1f", settings.noise.seed, patch.edge_length)
    return TerrainStreamer(root)
