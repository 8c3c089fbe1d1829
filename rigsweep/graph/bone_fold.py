"""
Bone-Fold: collapse pure-pivot nodes into their parents.

Children are resolved before their parent. A folded node's local transform is
composed into each surviving child, the children move to the grandparent and
the pivot is recorded as merged into the parent pivot.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..analysis.modifications import AnimationModifications
from ..scene.models import PROP_ACTIVE, TRANSFORM_PROPERTIES, SceneNode
from .mapping import ObjectMapping
from .marker import MarkResult
from .models import FOLD_TRANSPARENT_USAGES, GraphStore

logger = logging.getLogger(__name__)


@dataclass
class FoldResult:
    folded_nodes: List[SceneNode] = field(default_factory=list)
    # node -> why it stayed (only nodes that were candidates at all)
    refused: Dict[SceneNode, str] = field(default_factory=dict)

    @property
    def fold_count(self) -> int:
        return len(self.folded_nodes)


class BoneFolder:
    """
    Folds a node into its parent when:
    - it carries only its pivot
    - its pivot is only used as a bone, a parent, or a component's transform
    - its own transform is not animated
    - no children remain, or its active flag is fixed and either its transform
      is identity or no remaining child is animated and its scale is uniform

    The root and pinned nodes never fold.
    """

    def __init__(self,
                 root: SceneNode,
                 store: GraphStore,
                 marks: MarkResult,
                 modifications: AnimationModifications,
                 pinned: Iterable[SceneNode] = (),
                 mapping: Optional[ObjectMapping] = None):
        self.root = root
        self.store = store
        self.marks = marks
        self.modifications = modifications
        self.pinned: Set[SceneNode] = set(pinned)
        self.mapping = mapping if mapping is not None else ObjectMapping()

    def run(self) -> FoldResult:
        """
        Repeat the bottom-up pass until it folds nothing.

        A fold rewrites its children's local transforms, so a child refused
        earlier in the pass may have become foldable.
        """
        result = FoldResult()
        rounds = 0
        while True:
            rounds += 1
            before = result.fold_count
            result.refused = {}
            for child in list(self.root.children):
                self._visit(child, result)
            if result.fold_count == before:
                break
        logger.info(f"[BoneFold] Folded {result.fold_count} nodes in {rounds} rounds")
        return result

    def _visit(self, node: SceneNode, result: FoldResult) -> bool:
        """Returns True when `node` was folded away."""
        all_children_folded = True
        for child in list(node.children):
            if not self._visit(child, result):
                all_children_folded = False

        reason = self._refusal(node, all_children_folded)
        if reason is not None:
            result.refused[node] = reason
            logger.debug(f"[BoneFold] Keeping {node.path}: {reason}")
            return False

        self._fold(node)
        result.folded_nodes.append(node)
        return True

    def _refusal(self, node: SceneNode, all_children_folded: bool) -> Optional[str]:
        if node is self.root or node.parent is None:
            return "root"
        if node in self.pinned:
            return "pinned"
        if len(node.components) != 1:
            return "has components"

        usage = self.marks.usage(node.transform)
        if usage & ~FOLD_TRANSPARENT_USAGES:
            return f"pivot used as {usage}"

        if self.modifications.is_animated(node, TRANSFORM_PROPERTIES):
            return "transform animated"

        if all_children_folded and not node.children:
            return None

        if not node.active or self.modifications.is_animated(node, (PROP_ACTIVE,)):
            return "activeness affects children"
        if node.has_identity_transform():
            return None
        if any(self.modifications.is_animated(c, TRANSFORM_PROPERTIES) for c in node.children):
            return "child transform animated"
        if not node.local_scale.is_uniform():
            return "non-uniform scale"
        return None

    def _fold(self, node: SceneNode) -> None:
        parent = node.parent
        pivot = node.transform
        path = node.path

        self.mapping.record_merged(pivot, parent.transform)
        self.store.invalidate(pivot)
        node.push_transform_to_children()
        node.remove_keep_children()
        logger.debug(f"[BoneFold] Folded {path} into {parent.path}")
