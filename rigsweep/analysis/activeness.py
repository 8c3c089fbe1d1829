"""
Activeness queries over a scene snapshot.

A node is possibly active unless it, or one of its ancestors, is constantly
inactive at runtime. A component is possibly enabled unless its enabled flag
is constantly False.
"""

from typing import Dict

from ..scene.models import Component, SceneNode, PROP_ACTIVE, PROP_ENABLED
from .modifications import AnimationOracle


class ActivenessCache:
    """Memoized activeness answers for one run."""

    def __init__(self, oracle: AnimationOracle):
        self.oracle = oracle
        self._nodes: Dict[SceneNode, bool] = {}

    def node_possibly_active(self, node: SceneNode) -> bool:
        cached = self._nodes.get(node)
        if cached is not None:
            return cached

        flag = self.oracle.get_animated_flag(node, PROP_ACTIVE, node.active)
        if flag is False:
            result = False
        elif node.parent is None:
            result = True
        else:
            result = self.node_possibly_active(node.parent)

        self._nodes[node] = result
        return result

    def component_possibly_enabled(self, component: Component) -> bool:
        if component.enabled is None:
            return True
        flag = self.oracle.get_animated_flag(component, PROP_ENABLED, component.enabled)
        return flag is not False

    def possibly_active(self, component: Component) -> bool:
        """Node possibly active and component possibly enabled."""
        return (
            self.node_possibly_active(component.node)
            and self.component_possibly_enabled(component)
        )
