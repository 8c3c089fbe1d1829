"""
The Marker.

Worklist fixpoint over the dependency graph. Marks are usage-kind flags that
only ever grow; a record is expanded once, the first time it is marked, since
whether an edge is followed depends on the dependant being marked at all and
never on how it was marked.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, List, Optional, Set

from ..analysis.activeness import ActivenessCache
from ..scene.models import Component, SceneNode
from .models import Classification, DependencyCondition, DependencyType, GraphStore

logger = logging.getLogger(__name__)

# Usage kind given to seeds
SEED_USAGE = DependencyType.NORMAL


@dataclass
class MarkResult:
    """
    Marked set of one marker run.

    marks: record index -> accumulated usage kinds
    reasons: record index -> index of the record that first marked it (None for seeds)
    unconditional: indices reached by a seed or an EVEN_IF_DEPENDANT_DISABLED edge
    drivers: index -> dependants that reached it through activeness-conditional edges
    """
    store: GraphStore
    marks: Dict[int, DependencyType] = field(default_factory=dict)
    reasons: Dict[int, Optional[int]] = field(default_factory=dict)
    seeds: Set[int] = field(default_factory=set)
    unconditional: Set[int] = field(default_factory=set)
    drivers: Dict[int, Set[int]] = field(default_factory=dict)

    def _index(self, target: Any) -> Optional[int]:
        if isinstance(target, int):
            return target
        return self.store.index_of(target)

    def is_marked(self, target: Any) -> bool:
        index = self._index(target)
        return index is not None and index in self.marks

    def usage(self, target: Any) -> DependencyType:
        index = self._index(target)
        if index is None:
            return DependencyType.NONE
        return self.marks.get(index, DependencyType.NONE)

    def marked_components(self) -> List[Component]:
        return [self.store.component_at(i) for i in sorted(self.marks) if self.store.is_alive(i)]

    def unmarked_components(self) -> List[Component]:
        return [r.component for r in self.store.records() if r.index not in self.marks]

    def explain(self, target: Any) -> List[Component]:
        """
        Chain of components from the seed that first reached `target` down to
        `target` itself. Empty when `target` is not marked.
        """
        index = self._index(target)
        if index is None or index not in self.marks:
            return []

        chain: List[int] = []
        visited: Set[int] = set()
        current: Optional[int] = index
        while current is not None and current not in visited:
            visited.add(current)
            chain.append(current)
            current = self.reasons.get(current)
        return [self.store.component_at(i) for i in reversed(chain)]

    def enablement_schedule(self) -> Dict[Component, List[Component]]:
        """
        HEAVY_BEHAVIOUR components whose retention only comes through
        activeness-conditional edges, mapped to the dependants driving them.

        Such a component may be disabled whenever all of its drivers are
        inactive. BEHAVIOUR components never appear here.
        """
        schedule: Dict[Component, List[Component]] = {}
        for record in self.store.records():
            index = record.index
            if index not in self.marks or index in self.unconditional:
                continue
            if not record.classification & Classification.HEAVY_BEHAVIOUR:
                continue
            if record.classification & (Classification.BEHAVIOUR | Classification.ENTRYPOINT):
                continue
            drivers = self.drivers.get(index)
            if not drivers:
                continue
            schedule[record.component] = [
                self.store.component_at(d) for d in sorted(drivers)
            ]
        return schedule

    def __len__(self) -> int:
        return len(self.marks)


class ReachabilityMarker:
    """
    Multi-source BFS from the seed set through conditional edges.

    Seeds:
    - ENTRYPOINT components on possibly-active nodes, enabled or not
    - every component under an exclusion node (user pinned)
    - every component under a pinned node (aborted subtree)
    - the root pivot
    """

    def __init__(self,
                 store: GraphStore,
                 activeness: ActivenessCache,
                 root: Optional[SceneNode] = None,
                 exclusions: Iterable[SceneNode] = (),
                 pinned: Iterable[SceneNode] = ()):
        self.store = store
        self.activeness = activeness
        self.root = root
        self.exclusions = list(exclusions)
        self.pinned = set(pinned)

    def mark(self) -> MarkResult:
        result = MarkResult(store=self.store)
        queue: Deque[int] = deque()

        for index in self._collect_seeds():
            result.seeds.add(index)
            result.unconditional.add(index)
            self._mark(result, queue, index, SEED_USAGE, None)

        while queue:
            index = queue.popleft()
            record = self.store.record(index)
            dependant_active = self.activeness.possibly_active(record.component)

            for bundle in self.store.outgoing(index):
                kinds = DependencyType.NONE
                applies = False
                unconditional = False

                for conditions, kind in bundle.variants.items():
                    if not self._applies(conditions, dependant_active, bundle.dependency):
                        continue
                    applies = True
                    kinds |= kind
                    if conditions & DependencyCondition.EVEN_IF_DEPENDANT_DISABLED:
                        unconditional = True

                if not applies:
                    continue

                if unconditional:
                    result.unconditional.add(bundle.dependency)
                else:
                    result.drivers.setdefault(bundle.dependency, set()).add(index)
                self._mark(result, queue, bundle.dependency, kinds, index)

        logger.info(
            f"[Marker] Marked {len(result.marks)}/{len(self.store)} components "
            f"from {len(result.seeds)} seeds"
        )
        return result

    def _applies(self, conditions: DependencyCondition, dependant_active: bool, dependency: int) -> bool:
        if not conditions & DependencyCondition.EVEN_IF_DEPENDANT_DISABLED and not dependant_active:
            return False
        if conditions & DependencyCondition.ONLY_IF_TARGET_CAN_BE_ENABLE:
            target = self.store.record(dependency).component
            if not self.activeness.possibly_active(target):
                return False
        return True

    def _mark(self,
              result: MarkResult,
              queue: Deque[int],
              index: int,
              kinds: DependencyType,
              reason: Optional[int]) -> None:
        existing = result.marks.get(index)
        if existing is None:
            result.marks[index] = kinds
            result.reasons[index] = reason
            queue.append(index)
        else:
            result.marks[index] = existing | kinds

    def _collect_seeds(self) -> List[int]:
        seeds: Dict[int, None] = {}

        for record in self.store.records():
            if record.classification & Classification.ENTRYPOINT:
                if self.activeness.node_possibly_active(record.component.node):
                    seeds[record.index] = None
                else:
                    logger.debug(f"[Marker] Entrypoint {record.component!r} is never active")

        pinned_roots = list(self.exclusions) + list(self.pinned)
        for top in pinned_roots:
            if top.destroyed:
                continue
            for node in top.iter_descendants():
                for component in node.components:
                    index = self.store.index_of(component)
                    if index is not None:
                        seeds[index] = None

        if self.root is not None:
            root_pivot = self.store.pivot_index(self.root)
            if root_pivot is not None:
                seeds[root_pivot] = None

        return list(seeds)
