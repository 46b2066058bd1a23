"""Small demonstration harness for the fractal terrain."""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Sequence

from .leaf import MeshBuffers, VegetationInstance
from .settings import load_terrain_settings
from .streaming import build_terrain
from .vector import Vector3

LOGGER = logging.getLogger("fractal_terrain.demo")


class _CountingRenderContext:
    """Stand-in renderer that only tallies what it was asked to draw."""

    def __init__(self) -> None:
        self.meshes = 0
        self.triangles = 0
        self.instances = 0

    def draw_mesh(self, mesh: MeshBuffers) -> None:
        self.meshes += 1
        self.triangles += mesh.triangle_count

    def draw_instances(self, instances: Sequence[VegetationInstance]) -> None:
        self.instances += len(instances)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Walk an observer across the fractal terrain")
    parser.add_argument("--ticks", type=int, default=20, help="Number of streaming updates")
    parser.add_argument("--step", type=float, default=4.0, help="Distance travelled along +x per tick")
    parser.add_argument("--seed", type=int, default=None, help="Override the configured world seed")
    parser.add_argument("--config-dir", default=None, help="Directory holding terrain/biomes/lod JSON")
    return parser


def run(args: Sequence[str] | None = None) -> int:
    # //1.- Resolve settings, then walk the observer while keeping it on the ground.
    parsed = create_parser().parse_args(args)
    settings = load_terrain_settings(parsed.config_dir)
    if parsed.seed is not None:
        settings = dataclasses.replace(settings, noise=dataclasses.replace(settings.noise, seed=parsed.seed))
    streamer = build_terrain(settings)

    observer = settings.world.root_center
    for tick in range(parsed.ticks):
        streamer.update(observer)
        collision = streamer.resolve_collision(observer)
        observer = collision.position
        LOGGER.info(
            "Tick %d: observer (%.1f, %.2f, %.1f) ground %.2f",
            tick,
            observer.x,
            observer.y,
            observer.z,
            collision.ground_height,
        )
        observer = observer + Vector3(parsed.step, 0.0, 0.0)

    # //2.- Report the final tree and what a renderer would have received.
    renderer = _CountingRenderContext()
    streamer.draw(renderer)
    LOGGER.info("Terrain: %s", streamer.summary())
    LOGGER.info(
        "Drawn %d meshes, %d triangles, %d vegetation instances; %d re-root(s)",
        renderer.meshes,
        renderer.triangles,
        renderer.instances,
        streamer.reroots,
    )
    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(message)s")
    sys.exit(run())


if __name__ == "__main__":
    main()
