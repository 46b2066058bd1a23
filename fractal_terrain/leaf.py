"""Leaf meshes of the terrain quadtree.

A ``BufferedFractal`` recursively subdivides its patch a fixed number of
levels and keeps the result: render buffers, smooth vertex normals, a flat
height grid for point queries and the vegetation instances scattered over
it. Everything is derived from the patch and depth, so a leaf never needs
rebuilding once it exists.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .morton import get_coord, get_index
from .patch import Patch
from .surface import RenderContext, TerrainSurface
from .vector import Vector3, triangle_normal

LOGGER = logging.getLogger(__name__)

# Fractional slack allowed when a query sits on a leaf boundary.
_EDGE_TOLERANCE = 1e-9
_UP = np.array([0.0, 1.0, 0.0])


@dataclass(frozen=True)
class LeafSettings:
    """Vegetation knobs applied while a leaf is built."""

    min_vegetation_depth: int = 6
    vegetation_scale_divisor: float = 8.0
    vegetation_seed: int = 2

    def __post_init__(self) -> None:
        if self.vegetation_scale_divisor <= 0.0:
            raise ValueError("vegetation_scale_divisor must be positive")


@dataclass(frozen=True)
class VegetationInstance:
    translation: Vector3
    scale: float

    def matrix(self) -> np.ndarray:
        """Column-vector 4x4 transform: uniform scale, then translation."""

        transform = np.diag([self.scale, self.scale, self.scale, 1.0])
        transform[:3, 3] = (self.translation.x, self.translation.y, self.translation.z)
        return transform


@dataclass(frozen=True, eq=False)
class MeshBuffers:
    """Flat render buffers: four vertices and two triangles per quad."""

    positions: np.ndarray
    normals: np.ndarray
    colors: np.ndarray
    indices: np.ndarray

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])

    def as_float32(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Upload-ready copies (float32 attributes, uint32 flat indices)."""

        return (
            self.positions.astype(np.float32),
            self.normals.astype(np.float32),
            self.colors.astype(np.float32),
            self.indices.astype(np.uint32).ravel(),
        )


class _LeafBuilder:
    """Scratch arrays filled while recursing; indexed by Morton cell index."""

    def __init__(self, cells: int) -> None:
        quads = cells * cells
        self.cells = cells
        self.positions = np.zeros((quads * 4, 3), dtype=np.float64)
        self.colors = np.zeros((quads * 4, 3), dtype=np.float64)
        self.indices = np.zeros((quads * 2, 3), dtype=np.uint32)
        # Per quad: (triangle A normal, triangle B normal, A + B).
        self.quad_normals = np.zeros((quads, 3, 3), dtype=np.float64)
        self.heights = np.zeros((cells + 1) * (cells + 1), dtype=np.float64)
        self.vegetation: List[VegetationInstance] = []

    def emit_quad(self, patch: Patch, x: int, y: int) -> None:
        index = get_index(x, y)
        base = 4 * index
        corners = patch.corners
        for offset, corner in enumerate(corners):
            self.positions[base + offset] = (corner.x, corner.y, corner.z)
            color = patch.get_biome(corner).color
            self.colors[base + offset] = (color.x, color.y, color.z)

        bl, br, tl, tr = corners
        norm_a = triangle_normal(bl, tl, br)
        norm_b = triangle_normal(tl, tr, br)
        self.quad_normals[index] = (tuple(norm_a), tuple(norm_b), tuple(norm_a + norm_b))
        self.indices[2 * index] = (base, base + 2, base + 1)
        self.indices[2 * index + 1] = (base + 2, base + 3, base + 1)

        width = self.cells + 1
        self.heights[y * width + x] = bl.y
        self.heights[y * width + x + 1] = br.y
        self.heights[(y + 1) * width + x] = tl.y
        self.heights[(y + 1) * width + x + 1] = tr.y

    def vertex_normal(self, x: int, y: int) -> np.ndarray:
        # (quad x, quad y, contribution) of the quads touching vertex (x, y):
        # lower-left quad meets it at its tr corner (triangle B only), the
        # lower-right and upper-left ones at a corner on both triangles, and
        # the upper-right quad at its bl corner (triangle A only).
        total = np.zeros(3, dtype=np.float64)
        for qx, qy, component in ((x - 1, y - 1, 1), (x, y - 1, 2), (x - 1, y, 2), (x, y, 0)):
            if 0 <= qx < self.cells and 0 <= qy < self.cells:
                total += self.quad_normals[get_index(qx, qy), component]
        length = float(np.linalg.norm(total))
        if length == 0.0:
            return _UP.copy()
        return total / length

    def build_normals(self) -> np.ndarray:
        width = self.cells + 1
        grid = np.zeros((width * width, 3), dtype=np.float64)
        for y in range(width):
            for x in range(width):
                grid[y * width + x] = self.vertex_normal(x, y)

        normals = np.zeros_like(self.positions)
        for index in range(self.cells * self.cells):
            x, y = get_coord(index)
            base = 4 * index
            normals[base] = grid[y * width + x]
            normals[base + 1] = grid[y * width + x + 1]
            normals[base + 2] = grid[(y + 1) * width + x]
            normals[base + 3] = grid[(y + 1) * width + x + 1]
        return normals


class BufferedFractal(TerrainSurface):
    """Materialised leaf: ``layers_to_recurse`` levels below ``patch``."""

    def __init__(
        self,
        patch: Patch,
        depth: int,
        layers_to_recurse: int,
        settings: Optional[LeafSettings] = None,
    ) -> None:
        if layers_to_recurse < 1:
            raise ValueError("layers_to_recurse must be >= 1")
        self.patch = patch
        self.depth = depth
        self.layers_to_recurse = layers_to_recurse
        self.settings = settings or LeafSettings()
        self.final_depth = depth + layers_to_recurse - 1
        self.cells = 1 << (layers_to_recurse - 1)

        builder = _LeafBuilder(self.cells)
        self._fractal_recurse(builder, patch, depth, 0, 0, self.cells, barren=False)

        self.mesh = MeshBuffers(
            positions=builder.positions,
            normals=builder.build_normals(),
            colors=builder.colors,
            indices=builder.indices,
        )
        self._heights = builder.heights
        self.vegetation: Tuple[VegetationInstance, ...] = tuple(builder.vegetation)
        LOGGER.debug(
            "Built leaf at depth %d: %d quads, %d vegetation instances",
            depth,
            self.cells * self.cells,
            len(self.vegetation),
        )

    def _fractal_recurse(
        self,
        builder: _LeafBuilder,
        patch: Patch,
        depth: int,
        x: int,
        y: int,
        span: int,
        barren: bool,
    ) -> None:
        if depth == self.final_depth:
            builder.emit_quad(patch, x, y)
            return

        if not barren and depth >= self.settings.min_vegetation_depth:
            roll = patch.rng.seeded_random(patch.midpoint, self.settings.vegetation_seed)
            foliage = patch.get_biome(patch.midpoint).foliage_density
            if roll > foliage:
                barren = True
                builder.vegetation.append(
                    VegetationInstance(
                        translation=patch.midpoint,
                        scale=patch.edge_length / self.settings.vegetation_scale_divisor,
                    )
                )

        half = span // 2
        offsets = ((0, 0), (half, 0), (0, half), (half, half))
        for child, (dx, dy) in zip(patch.divide(depth), offsets):
            self._fractal_recurse(builder, child, depth + 1, x + dx, y + dy, half, barren)

    @property
    def heights(self) -> np.ndarray:
        return self._heights

    def draw(self, render_context: RenderContext) -> None:
        render_context.draw_mesh(self.mesh)
        if self.vegetation:
            render_context.draw_instances(self.vegetation)

    def get_buffered_fractal_at(self, point: Vector3) -> "BufferedFractal":
        return self

    def get_y_at(self, point: Vector3) -> float:
        """Bilinear height from the cached vertex grid."""

        patch = self.patch
        xp = (point.x - patch.bl.x) / (patch.br.x - patch.bl.x)
        yp = (point.z - patch.bl.z) / (patch.tl.z - patch.bl.z)
        if not (-_EDGE_TOLERANCE <= xp <= 1.0 + _EDGE_TOLERANCE and -_EDGE_TOLERANCE <= yp <= 1.0 + _EDGE_TOLERANCE):
            raise ValueError(f"point {point} lies outside this leaf")

        cells = self.cells
        sx = min(max(xp, 0.0), 1.0) * cells
        sy = min(max(yp, 0.0), 1.0) * cells
        x = min(int(math.floor(sx)), cells - 1)
        y = min(int(math.floor(sy)), cells - 1)
        fx = sx - x
        fy = sy - y

        width = cells + 1
        heights = self._heights
        bl = heights[y * width + x]
        br = heights[y * width + x + 1]
        tl = heights[(y + 1) * width + x]
        tr = heights[(y + 1) * width + x + 1]

        left = (1.0 - fy) * bl + fy * tl
        right = (1.0 - fy) * br + fy * tr
        return float((1.0 - fx) * left + fx * right)
