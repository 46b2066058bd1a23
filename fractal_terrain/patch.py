"""Subdividable terrain quadrilaterals.

A ``Patch`` is the unit of midpoint displacement. ``divide`` produces the
four displaced children of a patch; ``undivide`` runs one step of that
process backwards and recovers the parent a patch would have come from,
which is what lets the quadtree grow outward without disturbing any
terrain that already exists.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .biome import BiomeContainer, BiomeQuad, BiomeWeightField
from .noise import SeededRNG
from .vector import Vector3, average


class Quadrant(Enum):
    """Child positions; definition order is the canonical child order."""

    BL = 0
    BR = 1
    TL = 2
    TR = 3


# Corner names playing the (anchor, grown x, grown y, grown xy) roles when a
# patch is the given quadrant of its parent.
_UNDIVIDE_ROLES: Dict[Quadrant, Tuple[str, str, str, str]] = {
    Quadrant.BL: ("bl", "br", "tl", "tr"),
    Quadrant.BR: ("br", "bl", "tr", "tl"),
    Quadrant.TL: ("tl", "tr", "bl", "br"),
    Quadrant.TR: ("tr", "tl", "br", "bl"),
}


@dataclass(frozen=True)
class TerrainContext:
    """Shared collaborators every patch in one world refers to."""

    rng: SeededRNG
    biomes: BiomeContainer
    biome_field: BiomeWeightField
    # Below this subdivision depth children get freshly sampled biome quads;
    # from it on they inherit their parent's quad.
    biome_depth: int = 4
    displacement_seed: int = 1

    def quad_for(self, bl: Vector3, br: Vector3, tl: Vector3, tr: Vector3) -> BiomeQuad:
        return BiomeQuad.from_field(self.biome_field, self.biomes, bl, br, tl, tr)


class Patch:
    """Rigid quadrilateral with four corners and a derived midpoint."""

    __slots__ = ("bl", "br", "tl", "tr", "midpoint", "context", "biome_quad")

    def __init__(
        self,
        bl: Vector3,
        br: Vector3,
        tl: Vector3,
        tr: Vector3,
        context: TerrainContext,
        biome_quad: Optional[BiomeQuad] = None,
    ) -> None:
        self.bl = bl
        self.br = br
        self.tl = tl
        self.tr = tr
        self.context = context
        self.midpoint = average(bl, tl, tr, br)
        if biome_quad is None:
            biome_quad = context.quad_for(bl, br, tl, tr)
        self.biome_quad = biome_quad

    @classmethod
    def square(
        cls,
        center: Vector3,
        size: float,
        context: TerrainContext,
        depth: int = 0,
    ) -> "Patch":
        """Axis aligned root patch whose corners are displaced once."""

        if size <= 0.0:
            raise ValueError("patch size must be positive")
        half = size / 2.0
        flat = (
            Vector3(center.x - half, center.y, center.z - half),
            Vector3(center.x + half, center.y, center.z - half),
            Vector3(center.x - half, center.y, center.z + half),
            Vector3(center.x + half, center.y, center.z + half),
        )
        quad = context.quad_for(*flat)
        bl, br, tl, tr = (_displace(corner, depth, quad, context) for corner in flat)
        return cls(bl, br, tl, tr, context, quad)

    def __repr__(self) -> str:
        return f"Patch(bl={self.bl}, br={self.br}, tl={self.tl}, tr={self.tr})"

    @property
    def rng(self) -> SeededRNG:
        return self.context.rng

    @property
    def corners(self) -> Tuple[Vector3, Vector3, Vector3, Vector3]:
        return self.bl, self.br, self.tl, self.tr

    def corner(self, quadrant: Quadrant) -> Vector3:
        return getattr(self, quadrant.name.lower())

    @property
    def edge_length(self) -> float:
        return self.bl.planar_distance(self.br)

    @property
    def circumscribed_radius(self) -> float:
        return self.edge_length * math.sqrt(2.0) / 2.0

    def contains(self, point: Vector3) -> bool:
        xs = [corner.x for corner in self.corners]
        zs = [corner.z for corner in self.corners]
        return min(xs) <= point.x <= max(xs) and min(zs) <= point.z <= max(zs)

    def get_biome(self, point: Vector3):
        return self.biome_quad.biome_at(point)

    def divide(self, depth: int) -> Tuple["Patch", "Patch", "Patch", "Patch"]:
        """Split into the displaced (bl, br, tl, tr) children."""

        context = self.context
        quad = self.biome_quad
        mid_left = _displace(average(self.bl, self.tl), depth, quad, context)
        mid_top = _displace(average(self.tl, self.tr), depth, quad, context)
        mid_right = _displace(average(self.tr, self.br), depth, quad, context)
        mid_bottom = _displace(average(self.br, self.bl), depth, quad, context)
        midpoint = _displace(self.midpoint, depth, quad, context)

        if depth < context.biome_depth:
            field = context.biome_field
            w_bl, w_br, w_tl, w_tr = (field.weights_at(p) for p in self.corners)
            w_left = field.weights_at(mid_left)
            w_top = field.weights_at(mid_top)
            w_right = field.weights_at(mid_right)
            w_bottom = field.weights_at(mid_bottom)
            w_mid = field.weights_at(midpoint)
            biomes = context.biomes
            quads = (
                BiomeQuad(biomes, w_bl, w_bottom, w_left, w_mid, lower=self.bl, upper=midpoint),
                BiomeQuad(biomes, w_bottom, w_br, w_mid, w_right, lower=mid_bottom, upper=mid_right),
                BiomeQuad(biomes, w_left, w_mid, w_tl, w_top, lower=mid_left, upper=mid_top),
                BiomeQuad(biomes, w_mid, w_right, w_top, w_tr, lower=midpoint, upper=self.tr),
            )
        else:
            quads = (quad, quad, quad, quad)

        return (
            Patch(self.bl, mid_bottom, mid_left, midpoint, context, quads[0]),
            Patch(mid_bottom, self.br, midpoint, mid_right, context, quads[1]),
            Patch(mid_left, midpoint, self.tl, mid_top, context, quads[2]),
            Patch(midpoint, mid_right, mid_top, self.tr, context, quads[3]),
        )

    def undivide(self, quadrant_to_be: Quadrant, depth: int) -> "Patch":
        """Rebuild the parent that has this patch as its ``quadrant_to_be`` child.

        ``depth`` is this patch's own depth, so the parent was divided at
        ``depth - 1``. Every displacement that produced this patch's corners
        is a pure function of position, so it can be recomputed and removed.
        """

        context = self.context
        roles = _UNDIVIDE_ROLES[quadrant_to_be]
        anchor, old_x, old_y, old_xy = (getattr(self, name) for name in roles)

        d_x = old_x - anchor
        d_y = old_y - anchor
        grown_x = old_x + d_x
        grown_y = old_y + d_y
        grown_xy = old_xy + d_x + d_y

        placed = dict(zip(roles, (anchor, grown_x, grown_y, grown_xy)))
        parent_depth = depth - 1
        if parent_depth >= context.biome_depth:
            quad = self.biome_quad
        else:
            quad = context.quad_for(placed["bl"], placed["br"], placed["tl"], placed["tr"])

        # (anchor + grown) / 2 + displacement == old edge point
        height_x = 2.0 * (old_x.y - _displacement(old_x, parent_depth, quad, context)) - anchor.y
        height_y = 2.0 * (old_y.y - _displacement(old_y, parent_depth, quad, context)) - anchor.y
        # (anchor + grown_x + grown_y + grown_xy) / 4 + displacement == old centre
        height_xy = (
            4.0 * (old_xy.y - _displacement(old_xy, parent_depth, quad, context))
            - height_x
            - height_y
            - anchor.y
        )

        placed[roles[1]] = grown_x.with_y(height_x)
        placed[roles[2]] = grown_y.with_y(height_y)
        placed[roles[3]] = grown_xy.with_y(height_xy)
        return Patch(placed["bl"], placed["br"], placed["tl"], placed["tr"], context, quad)


def _displacement(point: Vector3, depth: int, quad: BiomeQuad, context: TerrainContext) -> float:
    amplitude = quad.biome_at(point).amplitude
    return context.rng.exp_rand(point, depth, context.displacement_seed, amplitude)


def _displace(point: Vector3, depth: int, quad: BiomeQuad, context: TerrainContext) -> Vector3:
    return point.with_y(point.y + _displacement(point, depth, quad, context))
