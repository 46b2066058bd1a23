"""Capabilities shared by quadtree nodes and leaves."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Sequence

from .vector import Vector3

if TYPE_CHECKING:
    from .leaf import BufferedFractal, MeshBuffers, VegetationInstance

DEFAULT_COLLISION_OFFSET = 0.1


class UnloadedRegionError(LookupError):
    """Raised when a query reaches a quadrant that has not been expanded."""


class RenderContext(Protocol):
    """What the external renderer has to accept from the terrain."""

    def draw_mesh(self, mesh: "MeshBuffers") -> None:
        ...

    def draw_instances(self, instances: Sequence["VegetationInstance"]) -> None:
        ...


# //1.- Describe the outcome of clamping a position onto the terrain.
@dataclass(frozen=True)
class CollisionResult:
    hit: bool
    position: Vector3
    ground_height: float

    def __bool__(self) -> bool:
        return self.hit


# //2.- Common surface contract; nodes route queries, leaves answer them.
class TerrainSurface(ABC):
    collision_offset: float = DEFAULT_COLLISION_OFFSET

    @abstractmethod
    def get_buffered_fractal_at(self, point: Vector3) -> "BufferedFractal":
        ...

    @abstractmethod
    def get_y_at(self, point: Vector3) -> float:
        ...

    @abstractmethod
    def draw(self, render_context: RenderContext) -> None:
        ...

    def update_position_given_collisions(self, position: Vector3) -> CollisionResult:
        """Pin ``position`` onto the heightfield whenever it is off the surface."""

        ground = self.get_y_at(position)
        if ground != position.y:
            snapped = position.with_y(ground + self.collision_offset)
            return CollisionResult(hit=True, position=snapped, ground_height=ground)
        return CollisionResult(hit=False, position=position, ground_height=ground)
