"""Structured loader for terrain generation settings."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .biome import Biome
from .leaf import LeafSettings
from .lod import LodPolicyTable
from .noise import DEFAULT_HASH_RESOLUTION
from .vector import Vector3

LOGGER = logging.getLogger(__name__)

SEED_ENVIRONMENT_VARIABLE = "FRACTAL_TERRAIN_SEED"


# //1.- Capture the seed and displacement falloff feeding the noise engine.
@dataclass(frozen=True)
class NoiseSettings:
    seed: int
    roughness_base: float = 2.0
    hash_resolution: int = DEFAULT_HASH_RESOLUTION


# //2.- Describe the initial root patch and collision behaviour.
@dataclass(frozen=True)
class WorldSettings:
    root_size: float
    root_center: Vector3
    root_depth: int = 0
    collision_offset: float = 0.1


# //3.- Record the biome list and the noise field that weights it.
@dataclass(frozen=True)
class BiomeSettings:
    biomes: Tuple[Biome, ...]
    noise_scale: float
    channel_offset: float
    weight_floor: float
    biome_depth: int
    noise_seed: Optional[int] = None


# //4.- Aggregate complete terrain settings for the streamer.
@dataclass(frozen=True)
class TerrainSettings:
    noise: NoiseSettings
    world: WorldSettings
    biomes: BiomeSettings
    lod: LodPolicyTable
    leaf: LeafSettings


# //5.- Resolve the bundled configuration directory next to this module.
def _default_config_directory() -> str:
    return os.path.join(os.path.dirname(__file__), "config")


# //6.- Load a single JSON configuration file and coerce to dictionary.
def _read_json_config(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


# //7.- Build noise settings, letting the environment override the seed.
def _load_noise_settings(payload: Mapping[str, object], env: Mapping[str, str]) -> NoiseSettings:
    seed = int(payload["seed"])
    override = env.get(SEED_ENVIRONMENT_VARIABLE)
    if override is not None and override.strip():
        try:
            seed = int(override.strip())
        except ValueError as exc:
            raise ValueError(f"{SEED_ENVIRONMENT_VARIABLE} must be an integer, got {override!r}") from exc
        LOGGER.debug("Seed overridden from environment: %d", seed)
    roughness_base = float(payload.get("roughness_base", 2.0))
    if roughness_base < 1.0:
        raise ValueError("roughness_base must be >= 1")
    hash_resolution = int(payload.get("hash_resolution", DEFAULT_HASH_RESOLUTION))
    if hash_resolution <= 0:
        raise ValueError("hash_resolution must be positive")
    return NoiseSettings(seed=seed, roughness_base=roughness_base, hash_resolution=hash_resolution)


# //8.- Parse the root patch placement from the same terrain file.
def _load_world_settings(payload: Mapping[str, object]) -> WorldSettings:
    size = float(payload["root_size"])
    if size <= 0:
        raise ValueError("Root size must be positive")
    center = payload.get("root_center", (0.0, 0.0, 0.0))
    if len(center) != 3:
        raise ValueError("root_center must be a three element array")
    return WorldSettings(
        root_size=size,
        root_center=Vector3.from_iter(float(component) for component in center),
        root_depth=int(payload.get("root_depth", 0)),
        collision_offset=float(payload.get("collision_offset", 0.1)),
    )


# //9.- Interpret biome definitions and weight field tuning.
def _load_biome_settings(config_dir: str) -> BiomeSettings:
    payload = _read_json_config(os.path.join(config_dir, "biomes.json"))
    biomes = tuple(Biome.from_mapping(entry) for entry in payload["biomes"])
    if not biomes:
        raise ValueError("At least one biome must be configured")
    noise_seed = payload.get("noise_seed")
    return BiomeSettings(
        biomes=biomes,
        noise_scale=float(payload.get("noise_scale", 64.0)),
        channel_offset=float(payload.get("channel_offset", 17.31)),
        weight_floor=float(payload.get("weight_floor", 0.01)),
        biome_depth=int(payload.get("biome_depth", 4)),
        noise_seed=None if noise_seed is None else int(noise_seed),
    )


# //10.- Construct the LOD table and leaf vegetation knobs.
def _load_lod_settings(config_dir: str) -> Tuple[LodPolicyTable, LeafSettings]:
    payload = _read_json_config(os.path.join(config_dir, "lod.json"))
    table = LodPolicyTable.from_mapping(payload)
    leaf = LeafSettings(
        min_vegetation_depth=int(payload.get("min_vegetation_depth", 6)),
        vegetation_scale_divisor=float(payload.get("vegetation_scale_divisor", 8.0)),
        vegetation_seed=int(payload.get("vegetation_seed", 2)),
    )
    return table, leaf


# //11.- Public helper assembling the full terrain settings bundle.
def load_terrain_settings(
    config_dir: str | None = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> TerrainSettings:
    directory = config_dir or _default_config_directory()
    environment = os.environ if env is None else env
    LOGGER.debug("Loading terrain settings from %s", directory)
    terrain = _read_json_config(os.path.join(directory, "terrain.json"))
    noise = _load_noise_settings(terrain, environment)
    world = _load_world_settings(terrain)
    biomes = _load_biome_settings(directory)
    lod, leaf = _load_lod_settings(directory)
    return TerrainSettings(noise=noise, world=world, biomes=biomes, lod=lod, leaf=leaf)
