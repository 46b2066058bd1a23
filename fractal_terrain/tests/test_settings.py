"""Tests for terrain configuration loading."""
from __future__ import annotations

import json

import pytest

from fractal_terrain.settings import SEED_ENVIRONMENT_VARIABLE, load_terrain_settings


# //1.- Ensure configuration loader parses bundled JSON files correctly.
def test_load_terrain_settings_uses_defaults():
    settings = load_terrain_settings(env={})
    assert isinstance(settings.noise.seed, int)
    assert settings.noise.roughness_base >= 1.0
    assert settings.noise.hash_resolution > 0
    assert settings.world.root_size > 0
    assert settings.world.collision_offset >= 0
    assert len(settings.biomes.biomes) >= 2
    assert settings.biomes.weight_floor > 0
    assert settings.biomes.noise_seed is None
    assert settings.lod.policies
    assert settings.lod.policies[-1].buffer_at is None
    assert 1 <= settings.lod.leaf_layers <= 10
    assert settings.leaf.vegetation_scale_divisor > 0


def test_environment_overrides_seed():
    settings = load_terrain_settings(env={SEED_ENVIRONMENT_VARIABLE: " 42 "})
    assert settings.noise.seed == 42
    with pytest.raises(ValueError, match=SEED_ENVIRONMENT_VARIABLE):
        load_terrain_settings(env={SEED_ENVIRONMENT_VARIABLE: "not-a-seed"})


def _write_config(directory, terrain=None, biomes=None, lod=None):
    terrain = terrain or {"seed": 5, "root_size": 16.0}
    biomes = biomes or {
        "biomes": [{"color": [0.5, 0.5, 0.5], "amplitude": 1.0}],
        "biome_depth": 1,
        "noise_seed": 3,
    }
    lod = lod or {"policies": [{"to": 10, "bufferAt": 2}, {"from": 10}], "new_node_cutoff": 4}
    for name, payload in (("terrain.json", terrain), ("biomes.json", biomes), ("lod.json", lod)):
        (directory / name).write_text(json.dumps(payload), encoding="utf-8")


def test_custom_directory_fills_optional_keys(tmp_path):
    _write_config(tmp_path)
    settings = load_terrain_settings(str(tmp_path), env={})
    assert settings.noise.seed == 5
    assert settings.noise.roughness_base == 2.0
    assert tuple(settings.world.root_center) == (0.0, 0.0, 0.0)
    assert settings.world.root_depth == 0
    assert settings.biomes.noise_seed == 3
    assert settings.biomes.biomes[0].foliage_density == 1.0
    assert settings.lod.leaf_layers == 5
    assert settings.lod.policy_for_distance(10.0).buffer_at is None
    assert settings.leaf.min_vegetation_depth == 6


@pytest.mark.parametrize(
    "overrides",
    [
        {"terrain": {"seed": 1, "root_size": -4.0}},
        {"terrain": {"seed": 1, "root_size": 4.0, "roughness_base": 0.5}},
        {"biomes": {"biomes": [{"color": [0, 0, 0], "amplitude": -1.0}]}},
        {"lod": {"policies": [], "new_node_cutoff": 1.0, "leaf_layers": 12}},
        {"lod": {"policies": [{"from": 5, "to": 1}], "new_node_cutoff": 1.0}},
    ],
)
def test_invalid_configuration_is_rejected(tmp_path, overrides):
    _write_config(tmp_path, **overrides)
    with pytest.raises(ValueError):
        load_terrain_settings(str(tmp_path), env={})
