"""Tests for leaf mesh construction, height queries and vegetation."""
from __future__ import annotations

import numpy as np
import pytest

from fractal_terrain.biome import Biome
from fractal_terrain.leaf import BufferedFractal, LeafSettings, VegetationInstance
from fractal_terrain.morton import get_coord
from fractal_terrain.patch import Patch, Quadrant
from fractal_terrain.vector import Vector3


class _RecordingRenderContext:
    def __init__(self) -> None:
        self.meshes = []
        self.instances = []

    def draw_mesh(self, mesh) -> None:
        self.meshes.append(mesh)

    def draw_instances(self, instances) -> None:
        self.instances.extend(instances)


def _leaf(context, layers: int = 3, settings: LeafSettings | None = None) -> BufferedFractal:
    patch = Patch.square(Vector3(0.0, 0.0, 0.0), 16.0, context, depth=2)
    return BufferedFractal(patch, 2, layers, settings)


def test_buffer_sizes_follow_layer_count(context) -> None:
    leaf = _leaf(context, layers=3)
    assert leaf.cells == 4
    assert leaf.final_depth == 4
    assert leaf.mesh.vertex_count == 4 * 16
    assert leaf.mesh.triangle_count == 2 * 16
    assert leaf.heights.shape == (25,)
    positions, normals, colors, indices = leaf.mesh.as_float32()
    assert positions.dtype == np.float32 and indices.dtype == np.uint32
    assert indices.shape == (16 * 2 * 3,)


def test_single_layer_leaf_is_the_patch_itself(context) -> None:
    leaf = _leaf(context, layers=1)
    patch = leaf.patch
    expected = np.array([tuple(corner) for corner in patch.corners])
    assert np.allclose(leaf.mesh.positions, expected)
    assert leaf.mesh.indices.tolist() == [[0, 2, 1], [2, 3, 1]]
    with pytest.raises(ValueError):
        BufferedFractal(patch, 2, 0)


def test_quads_are_written_at_their_morton_index(context) -> None:
    leaf = _leaf(context, layers=3)
    step = leaf.patch.edge_length / leaf.cells
    for index in range(leaf.cells * leaf.cells):
        x, y = get_coord(index)
        bl = leaf.mesh.positions[4 * index]
        tr = leaf.mesh.positions[4 * index + 3]
        assert bl[0] == pytest.approx(leaf.patch.bl.x + x * step)
        assert bl[2] == pytest.approx(leaf.patch.bl.z + y * step)
        assert tr[0] == pytest.approx(leaf.patch.bl.x + (x + 1) * step)
        assert tr[2] == pytest.approx(leaf.patch.bl.z + (y + 1) * step)


def test_normals_are_unit_and_shared_between_coincident_vertices(context) -> None:
    leaf = _leaf(context, layers=3)
    normals = leaf.mesh.normals
    assert np.allclose(np.linalg.norm(normals, axis=1), 1.0)
    assert np.all(normals[:, 1] > 0.0)
    # //1.- Every copy of the same grid vertex must carry the same smooth normal.
    by_position = {}
    for position, normal in zip(leaf.mesh.positions, normals):
        key = (round(float(position[0]), 6), round(float(position[2]), 6))
        by_position.setdefault(key, []).append(normal)
    assert len(by_position) == 25
    for copies in by_position.values():
        for normal in copies[1:]:
            assert np.allclose(normal, copies[0])


def test_height_queries_hit_vertices_and_interpolate(context) -> None:
    leaf = _leaf(context, layers=3)
    for position in leaf.mesh.positions:
        point = Vector3(float(position[0]), 0.0, float(position[2]))
        assert leaf.get_y_at(point) == pytest.approx(float(position[1]))
    # Centre of the first cell is the mean of its four corners.
    corners = leaf.mesh.positions[0:4]
    centre = Vector3(float(corners[:, 0].mean()), 0.0, float(corners[:, 2].mean()))
    assert leaf.get_y_at(centre) == pytest.approx(float(corners[:, 1].mean()))
    with pytest.raises(ValueError):
        leaf.get_y_at(Vector3(100.0, 0.0, 0.0))


def test_sibling_leaves_agree_on_shared_edge(context) -> None:
    root = Patch.square(Vector3(0.0, 0.0, 0.0), 32.0, context)
    children = root.divide(0)
    left = BufferedFractal(children[Quadrant.BL.value], 1, 4)
    right = BufferedFractal(children[Quadrant.BR.value], 1, 4)
    top = BufferedFractal(children[Quadrant.TL.value], 1, 4)
    for z in np.linspace(-16.0, 0.0, 17):
        point = Vector3(0.0, 0.0, float(z))
        assert left.get_y_at(point) == pytest.approx(right.get_y_at(point), abs=1e-9)
    for x in np.linspace(-16.0, 0.0, 17):
        point = Vector3(float(x), 0.0, 0.0)
        assert left.get_y_at(point) == pytest.approx(top.get_y_at(point), abs=1e-9)


def test_leaf_is_deterministic(context_factory) -> None:
    first = _leaf(context_factory(seed=21))
    second = _leaf(context_factory(seed=21))
    assert np.array_equal(first.mesh.positions, second.mesh.positions)
    assert np.array_equal(first.heights, second.heights)
    assert first.vegetation == second.vegetation


def test_sparse_biome_places_vegetation_once_per_branch(context_factory) -> None:
    context = context_factory(biomes=(Biome(Vector3(0.2, 0.5, 0.2), amplitude=1.0, foliage_density=0.001),))
    settings = LeafSettings(min_vegetation_depth=2, vegetation_scale_divisor=4.0)
    leaf = _leaf(context, layers=3, settings=settings)
    # Internal cells sit at depths 2 and 3: at most one per depth-3 branch.
    assert 1 <= len(leaf.vegetation) <= 4
    for instance in leaf.vegetation:
        assert leaf.patch.contains(instance.translation)
        assert instance.scale in (pytest.approx(16.0 / 4.0), pytest.approx(8.0 / 4.0))


def test_dense_biome_or_shallow_leaf_grows_nothing(context_factory) -> None:
    dense = context_factory(biomes=(Biome(Vector3(0.2, 0.5, 0.2), amplitude=1.0, foliage_density=1.0),))
    assert _leaf(dense, settings=LeafSettings(min_vegetation_depth=0)).vegetation == ()
    sparse = context_factory(biomes=(Biome(Vector3(0.2, 0.5, 0.2), amplitude=1.0, foliage_density=0.001),))
    assert _leaf(sparse, settings=LeafSettings(min_vegetation_depth=10)).vegetation == ()


def test_vegetation_matrix_scales_then_translates() -> None:
    instance = VegetationInstance(translation=Vector3(1.0, 2.0, 3.0), scale=0.5)
    matrix = instance.matrix()
    assert matrix.shape == (4, 4)
    assert np.allclose(matrix @ np.array([2.0, 0.0, 0.0, 1.0]), [2.0, 2.0, 3.0, 1.0])


def test_draw_hands_mesh_and_instances_to_renderer(context_factory) -> None:
    context = context_factory(biomes=(Biome(Vector3(0.2, 0.5, 0.2), amplitude=1.0, foliage_density=0.001),))
    leaf = _leaf(context, settings=LeafSettings(min_vegetation_depth=2))
    renderer = _RecordingRenderContext()
    leaf.draw(renderer)
    assert renderer.meshes == [leaf.mesh]
    assert renderer.instances == list(leaf.vegetation)
    assert leaf.get_buffered_fractal_at(leaf.patch.midpoint) is leaf
