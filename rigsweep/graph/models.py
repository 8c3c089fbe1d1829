"""
Core data models for the dependency graph.

The graph is an arena: one GraphNode record per component (every scene node
contributes its pivot Transform), addressed by integer index. Edges refer to
indices, never to each other, so cycles cost nothing and destroying a
component only invalidates its index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Flag, auto
from typing import Any, Dict, Iterator, List, Optional

from ..errors import GraphConsistencyError
from ..scene.models import Component, SceneNode, Transform


class DependencyCondition(Flag):
    """When an edge is followed by the marker."""
    DEFAULT = 0
    EVEN_IF_DEPENDANT_DISABLED = auto()   # follow even if the dependant is never active
    ONLY_IF_TARGET_CAN_BE_ENABLE = auto() # skip when the dependency can never be enabled


class DependencyType(Flag):
    """How a dependency uses its target. Marks accumulate these."""
    NONE = 0
    NORMAL = auto()
    BONE = auto()
    PARENT = auto()
    COMPONENT_TO_TRANSFORM = auto()


# Usages that still allow a pivot to be folded into its parent
FOLD_TRANSPARENT_USAGES = (
    DependencyType.BONE
    | DependencyType.PARENT
    | DependencyType.COMPONENT_TO_TRANSFORM
)


class Classification(Flag):
    NONE = 0
    ENTRYPOINT = auto()       # observable outside the optimized hierarchy
    HEAVY_BEHAVIOUR = auto()  # costs resources only while enabled
    BEHAVIOUR = auto()        # enabled state must never be changed


@dataclass(frozen=True)
class DependencyEdge:
    """Flattened view of one edge variant, for diagnostics and tests."""
    dependant: int
    dependency: int
    conditions: DependencyCondition
    kind: DependencyType


@dataclass
class EdgeBundle:
    """
    All edges from one dependant to one dependency.

    Distinct condition variants are kept side by side; the marker follows the
    bundle when any variant applies, adding that variant's usage kinds.
    """
    dependency: int
    variants: Dict[DependencyCondition, DependencyType] = field(default_factory=dict)

    def add(self, conditions: DependencyCondition, kind: DependencyType) -> None:
        self.variants[conditions] = self.variants.get(conditions, DependencyType.NONE) | kind


@dataclass
class GraphNode:
    """One record per component instance."""
    index: int
    component: Component
    classification: Classification = Classification.NONE
    provider_name: Optional[str] = None
    fallback: bool = False  # classified conservatively, no provider ran
    outgoing: Dict[int, EdgeBundle] = field(default_factory=dict)
    alive: bool = True

    @property
    def is_pivot(self) -> bool:
        return isinstance(self.component, Transform)


class GraphStore:
    """
    Arena of GraphNode records owned exclusively by one optimization run.
    """

    def __init__(self):
        self._records: List[GraphNode] = []
        self._index: Dict[Component, int] = {}

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_component(self, component: Component) -> int:
        existing = self._index.get(component)
        if existing is not None:
            return existing
        index = len(self._records)
        self._records.append(GraphNode(index=index, component=component))
        self._index[component] = index
        return index

    def index_of(self, target: Any) -> Optional[int]:
        """
        Resolve a component (or a node, meaning its pivot) to a live index.

        Returns None when the target is unknown, destroyed or invalidated.
        """
        if isinstance(target, SceneNode):
            if target.destroyed:
                return None
            target = target.transform
        if not isinstance(target, Component) or target.destroyed:
            return None
        index = self._index.get(target)
        if index is None or not self._records[index].alive:
            return None
        return index

    def record(self, index: int) -> GraphNode:
        if index < 0 or index >= len(self._records) or not self._records[index].alive:
            raise GraphConsistencyError(
                f"Graph index {index} is not a live record",
                details={"index": index},
            )
        return self._records[index]

    def component_at(self, index: int) -> Component:
        """Component of a record, live or invalidated."""
        return self._records[index].component

    def is_alive(self, index: int) -> bool:
        return 0 <= index < len(self._records) and self._records[index].alive

    def record_for(self, component: Component) -> Optional[GraphNode]:
        index = self.index_of(component)
        return None if index is None else self._records[index]

    def records(self) -> Iterator[GraphNode]:
        return (r for r in self._records if r.alive)

    def invalidate(self, component: Component) -> None:
        """Drop a destroyed component; edges pointing at it become dead."""
        index = self._index.get(component)
        if index is not None:
            self._records[index].alive = False

    def pivot_index(self, node: SceneNode) -> Optional[int]:
        return self.index_of(node)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self,
                 dependant: int,
                 dependency: int,
                 conditions: DependencyCondition = DependencyCondition.DEFAULT,
                 kind: DependencyType = DependencyType.NORMAL) -> None:
        source = self.record(dependant)
        self.record(dependency)
        bundle = source.outgoing.get(dependency)
        if bundle is None:
            bundle = EdgeBundle(dependency=dependency)
            source.outgoing[dependency] = bundle
        bundle.add(conditions, kind)

    def outgoing(self, index: int) -> Iterator[EdgeBundle]:
        """Bundles whose dependency is still alive."""
        for bundle in self._records[index].outgoing.values():
            if self._records[bundle.dependency].alive:
                yield bundle

    def edges(self) -> Iterator[DependencyEdge]:
        for record in self.records():
            for bundle in self.outgoing(record.index):
                for conditions, kind in bundle.variants.items():
                    yield DependencyEdge(record.index, bundle.dependency, conditions, kind)

    def edge_count(self) -> int:
        return sum(1 for _ in self.edges())

    def __len__(self) -> int:
        return sum(1 for _ in self.records())

    def __contains__(self, component: Any) -> bool:
        return self.index_of(component) is not None
