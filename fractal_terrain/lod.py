"""Adaptive level-of-detail quadtree over terrain patches.

Each tick the tree is pulled towards the observer: quadrants close enough
are expanded into further nodes or materialised leaves, distant ones are
dropped, and when the observer nears the edge of the root the whole tree is
nested one level deeper under a larger root rebuilt with ``Patch.undivide``.
"""
from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

from .leaf import BufferedFractal, LeafSettings
from .patch import Patch, Quadrant
from .surface import (
    DEFAULT_COLLISION_OFFSET,
    RenderContext,
    TerrainSurface,
    UnloadedRegionError,
)
from .vector import Vector3

LOGGER = logging.getLogger(__name__)

MAX_LEAF_LAYERS = 10


def _optional_float(value: object) -> Optional[float]:
    return None if value is None else float(value)


def _first_present(payload: Mapping[str, object], *keys: str) -> object:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


# //1.- One distance band of the level-of-detail table.
@dataclass(frozen=True)
class LodPolicy:
    from_distance: Optional[float] = None
    to_distance: Optional[float] = None
    # None despawns the band; otherwise children at this depth become leaves.
    buffer_at: Optional[int] = None

    def __post_init__(self) -> None:
        if (
            self.from_distance is not None
            and self.to_distance is not None
            and self.from_distance >= self.to_distance
        ):
            raise ValueError("LodPolicy requires from_distance < to_distance")

    def contains(self, distance: float) -> bool:
        if self.from_distance is not None and distance < self.from_distance:
            return False
        if self.to_distance is not None and distance >= self.to_distance:
            return False
        return True

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "LodPolicy":
        buffer_at = _first_present(payload, "bufferAt", "buffer_at")
        return cls(
            from_distance=_optional_float(_first_present(payload, "from", "from_distance")),
            to_distance=_optional_float(_first_present(payload, "to", "to_distance")),
            buffer_at=None if buffer_at is None else int(buffer_at),
        )


# //2.- Ordered band list plus the re-rooting and leaf resolution limits.
@dataclass(frozen=True)
class LodPolicyTable:
    policies: Tuple[LodPolicy, ...]
    new_node_cutoff: float
    leaf_layers: int = 5

    def __post_init__(self) -> None:
        if self.new_node_cutoff < 0.0:
            raise ValueError("new_node_cutoff must be >= 0")
        if not 1 <= self.leaf_layers <= MAX_LEAF_LAYERS:
            raise ValueError(f"leaf_layers must be between 1 and {MAX_LEAF_LAYERS}")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "LodPolicyTable":
        raw_policies = _first_present(payload, "policies", "policyList")
        if not isinstance(raw_policies, Sequence):
            raise ValueError("LOD configuration must define a policies array")
        cutoff = _first_present(payload, "new_node_cutoff", "newNodeCutoff")
        if cutoff is None:
            raise ValueError("LOD configuration must define new_node_cutoff")
        leaf_layers = _first_present(payload, "leaf_layers", "leafLayers")
        return cls(
            policies=tuple(LodPolicy.from_mapping(entry) for entry in raw_policies),
            new_node_cutoff=float(cutoff),
            leaf_layers=5 if leaf_layers is None else int(leaf_layers),
        )

    def policy_for_distance(self, distance: float) -> Optional[LodPolicy]:
        """First band whose half-open ``[from, to)`` range holds ``distance``."""

        for policy in self.policies:
            if policy.contains(distance):
                return policy
        return None

    def policy_for(self, patch: Patch, observer: Vector3) -> Optional[LodPolicy]:
        # Comparing d against bands grown by the radius r is the same as
        # comparing d - r against the bands themselves.
        distance = math.sqrt(patch.midpoint.planar_distance_sq(observer))
        return self.policy_for_distance(distance - patch.circumscribed_radius)


# //3.- Tagged child slot: absent, a nested node, or a materialised leaf.
class SlotKind(Enum):
    ABSENT = auto()
    NODE = auto()
    LEAF = auto()


@dataclass(frozen=True)
class ChildSlot:
    kind: SlotKind
    node: Optional["FractalNode"] = None
    leaf: Optional[BufferedFractal] = None

    @classmethod
    def absent(cls) -> "ChildSlot":
        return _ABSENT

    @classmethod
    def holding_node(cls, node: "FractalNode") -> "ChildSlot":
        return cls(SlotKind.NODE, node=node)

    @classmethod
    def holding_leaf(cls, leaf: BufferedFractal) -> "ChildSlot":
        return cls(SlotKind.LEAF, leaf=leaf)

    @property
    def surface(self) -> TerrainSurface:
        if self.kind is SlotKind.NODE:
            return self.node
        if self.kind is SlotKind.LEAF:
            return self.leaf
        raise UnloadedRegionError("query into unloaded region")


_ABSENT = ChildSlot(SlotKind.ABSENT)


# //4.- Aggregate counters for logging and tests.
@dataclass(frozen=True)
class TreeStats:
    nodes: int
    leaves: int
    vegetation: int
    max_depth: int

    def summary(self) -> str:
        return (
            f"nodes={self.nodes}, leaves={self.leaves}, "
            f"vegetation={self.vegetation}, max_depth={self.max_depth}"
        )


# //5.- Internal quadtree node orchestrating expansion, pruning and re-rooting.
class FractalNode(TerrainSurface):
    def __init__(
        self,
        patch: Patch,
        depth: int,
        policies: LodPolicyTable,
        leaf_settings: Optional[LeafSettings] = None,
        is_root: bool = False,
        collision_offset: float = DEFAULT_COLLISION_OFFSET,
    ) -> None:
        self.patch = patch
        self.depth = depth
        self.policies = policies
        self.leaf_settings = leaf_settings or LeafSettings()
        self.is_root = is_root
        self.collision_offset = collision_offset
        self.children: Dict[Quadrant, ChildSlot] = {quadrant: ChildSlot.absent() for quadrant in Quadrant}
        self.child_patches: Dict[Quadrant, Patch] = self._divide()

    def _divide(self) -> Dict[Quadrant, Patch]:
        return dict(zip(Quadrant, self.patch.divide(self.depth)))

    def child(self, quadrant: Quadrant) -> ChildSlot:
        return self.children[quadrant]

    def child_patch(self, quadrant: Quadrant) -> Patch:
        return self.child_patches[quadrant]

    def _new_child_node(self, quadrant: Quadrant) -> "FractalNode":
        return FractalNode(
            self.child_patches[quadrant],
            self.depth + 1,
            self.policies,
            self.leaf_settings,
            is_root=False,
            collision_offset=self.collision_offset,
        )

    def _new_child_leaf(self, quadrant: Quadrant) -> BufferedFractal:
        leaf = BufferedFractal(
            self.child_patches[quadrant],
            self.depth + 1,
            self.policies.leaf_layers,
            self.leaf_settings,
        )
        leaf.collision_offset = self.collision_offset
        return leaf

    # -- Streaming --------------------------------------------------------

    def expand_and_prune_tree(self, observer: Vector3) -> None:
        """Bring the subtree in line with the policy table for ``observer``."""

        if self.is_root:
            self.become_root_if_needed(observer)
        for quadrant in Quadrant:
            self._update_child(quadrant, observer)

    def _update_child(self, quadrant: Quadrant, observer: Vector3) -> None:
        patch = self.child_patches[quadrant]
        policy = self.policies.policy_for(patch, observer)
        slot = self.children[quadrant]

        if policy is None or policy.buffer_at is None:
            if slot.kind is not SlotKind.ABSENT:
                LOGGER.debug("Despawning %s child at depth %d", quadrant.name, self.depth + 1)
                self.children[quadrant] = ChildSlot.absent()
            return

        if self.depth + 1 >= policy.buffer_at:
            if slot.kind is not SlotKind.LEAF:
                self.children[quadrant] = ChildSlot.holding_leaf(self._new_child_leaf(quadrant))
            return

        if slot.kind is not SlotKind.NODE:
            slot = ChildSlot.holding_node(self._new_child_node(quadrant))
            self.children[quadrant] = slot
        slot.node.expand_and_prune_tree(observer)

    def become_root_if_needed(self, observer: Vector3) -> int:
        """Grow the root past every edge the observer is close to.

        Returns how many times the root grew.
        """

        cutoff = self.policies.new_node_cutoff
        grown = 0

        def nearer(a: Vector3, b: Vector3) -> bool:
            return a.planar_distance_sq(observer) < b.planar_distance_sq(observer)

        patch = self.patch
        if abs(observer.x - patch.bl.x) < cutoff:
            self.become_new_root(Quadrant.TR if nearer(patch.bl, patch.tl) else Quadrant.BR)
            grown += 1
        patch = self.patch
        if abs(observer.x - patch.br.x) < cutoff:
            self.become_new_root(Quadrant.TL if nearer(patch.br, patch.tr) else Quadrant.BL)
            grown += 1
        patch = self.patch
        if abs(observer.z - patch.tl.z) < cutoff:
            self.become_new_root(Quadrant.BR if nearer(patch.tl, patch.tr) else Quadrant.BL)
            grown += 1
        patch = self.patch
        if abs(observer.z - patch.bl.z) < cutoff:
            self.become_new_root(Quadrant.TR if nearer(patch.bl, patch.br) else Quadrant.TL)
            grown += 1
        return grown

    def become_new_root(self, quadrant_to_be: Quadrant) -> None:
        """Nest the current tree as ``quadrant_to_be`` of a twice larger root."""

        moved = copy.copy(self)
        moved.is_root = False
        # Fresh containers for this node; the old ones now belong to ``moved``.
        self.children = {quadrant: ChildSlot.absent() for quadrant in Quadrant}
        self.children[quadrant_to_be] = ChildSlot.holding_node(moved)
        self.depth -= 1
        self.patch = moved.patch.undivide(quadrant_to_be, moved.depth)
        self.child_patches = self._divide()
        LOGGER.info(
            "Re-rooted terrain: old root is now %s, root depth %d, edge %.1f",
            quadrant_to_be.name,
            self.depth,
            self.patch.edge_length,
        )

    def expand_uniformly(self, buffer_at: int) -> "FractalNode":
        """Eagerly fill every quadrant down to leaves at depth ``buffer_at``."""

        for quadrant in Quadrant:
            slot = self.children[quadrant]
            if self.depth + 1 >= buffer_at:
                if slot.kind is not SlotKind.LEAF:
                    self.children[quadrant] = ChildSlot.holding_leaf(self._new_child_leaf(quadrant))
                continue
            if slot.kind is not SlotKind.NODE:
                slot = ChildSlot.holding_node(self._new_child_node(quadrant))
                self.children[quadrant] = slot
            slot.node.expand_uniformly(buffer_at)
        return self

    # -- Queries ----------------------------------------------------------

    def quadrant_for(self, point: Vector3) -> Quadrant:
        mid = self.patch.midpoint
        if point.x > mid.x:
            return Quadrant.TR if point.z > mid.z else Quadrant.BR
        return Quadrant.TL if point.z > mid.z else Quadrant.BL

    def get_buffered_fractal_at(self, point: Vector3) -> BufferedFractal:
        quadrant = self.quadrant_for(point)
        slot = self.children[quadrant]
        if slot.kind is SlotKind.ABSENT:
            raise UnloadedRegionError(
                f"query into unloaded region: {quadrant.name} quadrant at depth {self.depth + 1} "
                f"is not loaded for point ({point.x:.3f}, {point.z:.3f})"
            )
        return slot.surface.get_buffered_fractal_at(point)

    def get_y_at(self, point: Vector3) -> float:
        return self.get_buffered_fractal_at(point).get_y_at(point)

    def draw(self, render_context: RenderContext) -> None:
        for slot in self.children.values():
            if slot.kind is not SlotKind.ABSENT:
                slot.surface.draw(render_context)

    def leaves(self) -> Iterator[BufferedFractal]:
        for slot in self.children.values():
            if slot.kind is SlotKind.LEAF:
                yield slot.leaf
            elif slot.kind is SlotKind.NODE:
                yield from slot.node.leaves()

    def stats(self) -> TreeStats:
        nodes = 1
        leaves = 0
        vegetation = 0
        max_depth = self.depth
        for slot in self.children.values():
            if slot.kind is SlotKind.NODE:
                child = slot.node.stats()
                nodes += child.nodes
                leaves += child.leaves
                vegetation += child.vegetation
                max_depth = max(max_depth, child.max_depth)
            elif slot.kind is SlotKind.LEAF:
                leaves += 1
                vegetation += len(slot.leaf.vegetation)
                max_depth = max(max_depth, slot.leaf.final_depth)
        return TreeStats(nodes=nodes, leaves=leaves, vegetation=vegetation, max_depth=max_depth)
