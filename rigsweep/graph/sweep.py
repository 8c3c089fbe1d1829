"""
Sweep: delete everything the marker did not reach.

Components are removed first, then nodes, children before parents. A node
goes when its pivot is unmarked and nothing retained is left on it. Its
children move up to its parent, so a retained node always ends up under the
nearest surviving ancestor. A node whose remaining children depend on its
active flag or on its non-uniform scale stays.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..analysis.modifications import AnimationModifications, AnimationOracle
from ..scene.models import PROP_ACTIVE, Component, SceneNode, Transform
from .mapping import ObjectMapping
from .marker import MarkResult
from .models import Classification, GraphStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    removed_components: List[Component] = field(default_factory=list)
    removed_nodes: List[SceneNode] = field(default_factory=list)
    # ENTRYPOINT components kept although unmarked
    kept_entrypoints: List[Component] = field(default_factory=list)
    # Unmarked nodes kept because removing them would change their children
    kept_nodes: Dict[SceneNode, str] = field(default_factory=dict)


class Sweeper:
    def __init__(self,
                 root: SceneNode,
                 store: GraphStore,
                 marks: MarkResult,
                 pinned: Iterable[SceneNode] = (),
                 mapping: Optional[ObjectMapping] = None,
                 oracle: Optional[AnimationOracle] = None):
        self.root = root
        self.store = store
        self.marks = marks
        self.pinned: Set[SceneNode] = set(pinned)
        self.mapping = mapping if mapping is not None else ObjectMapping()
        self.oracle = oracle if oracle is not None else AnimationModifications()

    def run(self) -> SweepResult:
        result = SweepResult()
        self._sweep_components(result)
        self._sweep_nodes(result)
        logger.info(
            f"[Sweep] Removed {len(result.removed_components)} components and "
            f"{len(result.removed_nodes)} nodes"
        )
        return result

    def _sweep_components(self, result: SweepResult) -> None:
        for record in list(self.store.records()):
            component = record.component
            if isinstance(component, Transform) or component.destroyed:
                continue
            if self.marks.is_marked(component) or component.node in self.pinned:
                continue
            if record.classification & Classification.ENTRYPOINT:
                result.kept_entrypoints.append(component)
                continue

            self.mapping.record_removed(component)
            self.store.invalidate(component)
            component.destroy()
            result.removed_components.append(component)
            logger.debug(f"[Sweep] Removed {component.display_name}")

    def _sweep_nodes(self, result: SweepResult) -> None:
        for node in reversed(list(self.root.iter_descendants())):
            if node is self.root or node.destroyed or node in self.pinned:
                continue
            pivot = node.transform
            if self.marks.is_marked(pivot):
                continue
            # Pivot only: any other component left here was retained
            if len(node.components) > 1:
                continue
            reason = self._hierarchy_refusal(node)
            if reason is not None:
                result.kept_nodes[node] = reason
                logger.debug(f"[Sweep] Keeping {node.path}: {reason}")
                continue

            path = node.path
            self.mapping.record_removed(pivot)
            self.store.invalidate(pivot)
            node.push_transform_to_children()
            node.remove_keep_children()
            result.removed_nodes.append(node)
            logger.debug(f"[Sweep] Removed node {path}")

    def _hierarchy_refusal(self, node: SceneNode) -> Optional[str]:
        """Why splicing `node` out would change what its children do, if it would."""
        if not node.children:
            return None
        if self.oracle.get_animated_flag(node, PROP_ACTIVE, node.active) is not True:
            return "activeness affects children"
        if not node.local_scale.is_uniform():
            return "non-uniform scale"
        return None
