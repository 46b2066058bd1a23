"""Tests for the terrain streamer and the demo harness."""
from __future__ import annotations

import dataclasses

import pytest

from fractal_terrain import demo
from fractal_terrain.lod import LodPolicy, LodPolicyTable
from fractal_terrain.settings import load_terrain_settings
from fractal_terrain.streaming import build_terrain
from fractal_terrain.surface import UnloadedRegionError
from fractal_terrain.vector import Vector3


def _small_settings(seed: int = 1337):
    settings = load_terrain_settings(env={})
    table = LodPolicyTable(
        policies=(
            LodPolicy(to_distance=8.0, buffer_at=3),
            LodPolicy(from_distance=8.0, to_distance=40.0, buffer_at=2),
            LodPolicy(from_distance=40.0),
        ),
        new_node_cutoff=12.0,
        leaf_layers=2,
    )
    return dataclasses.replace(
        settings,
        noise=dataclasses.replace(settings.noise, seed=seed),
        lod=table,
    )


class _CountingRenderer:
    def __init__(self) -> None:
        self.meshes = 0
        self.instances = 0

    def draw_mesh(self, mesh) -> None:
        self.meshes += 1

    def draw_instances(self, instances) -> None:
        self.instances += len(instances)


def test_build_terrain_starts_with_empty_root():
    streamer = build_terrain(_small_settings())
    assert streamer.root.is_root
    assert streamer.root.patch.edge_length == pytest.approx(64.0)
    with pytest.raises(UnloadedRegionError):
        streamer.height_at(Vector3(0.0, 0.0, 0.0))


def test_update_streams_terrain_under_observer():
    streamer = build_terrain(_small_settings())
    observer = Vector3(3.0, 0.0, -2.0)
    streamer.update(observer)
    assert streamer.ticks == 1
    ground = streamer.height_at(observer)
    collision = streamer.resolve_collision(observer.with_y(ground + 10.0))
    assert collision.hit
    assert collision.position.y == pytest.approx(ground + streamer.root.collision_offset)
    renderer = _CountingRenderer()
    streamer.draw(renderer)
    assert renderer.meshes == streamer.root.stats().leaves
    assert "root depth 0" in streamer.summary()


def test_same_seed_streams_identical_heights():
    points = [Vector3(x, 0.0, z) for x in (-5.0, 0.5, 6.0) for z in (-4.0, 7.5)]
    first = build_terrain(_small_settings(seed=3))
    second = build_terrain(_small_settings(seed=3))
    first.update(Vector3(0.0, 0.0, 0.0))
    second.update(Vector3(0.0, 0.0, 0.0))
    assert [first.height_at(p) for p in points] == [second.height_at(p) for p in points]


def test_walking_past_the_edge_grows_the_root():
    streamer = build_terrain(_small_settings())
    observer = Vector3(0.0, 0.0, 0.0)
    for _ in range(6):
        streamer.update(observer)
        observer = streamer.resolve_collision(observer).position + Vector3(5.0, 0.0, 0.0)
    assert streamer.reroots >= 1
    assert streamer.root.depth == -streamer.reroots
    streamer.height_at(observer - Vector3(5.0, 0.0, 0.0))


def test_demo_runs_with_bundled_configuration(caplog):
    caplog.set_level("INFO")
    assert demo.run(["--ticks", "2", "--step", "2.0", "--seed", "9"]) == 0
    assert any("Terrain: root depth" in message for message in caplog.messages)
