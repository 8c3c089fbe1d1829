"""
Object and property mapping.

Sweep and Bone-Fold move or delete things. Anything that referred to a
removed component (a renderer's bone list, an animation binding) needs to
know where it went. ObjectMapping records every removal, every fold
(pivot merged into parent pivot) and explicit property moves, and resolves
chains of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

from ..scene.models import Component, SceneNode

logger = logging.getLogger(__name__)

_REMOVED = object()


@dataclass(frozen=True)
class MappedPropertyInfo:
    """Where a property lives after optimization."""
    component: Component
    property_name: str


class MappedComponentInfo:
    """Mapping answer for one original component."""

    def __init__(self,
                 original: Component,
                 mapped_component: Optional[Component],
                 property_moves: Optional[Dict[str, Tuple[Component, str]]] = None):
        self.original = original
        self.mapped_component = mapped_component
        self._property_moves = property_moves or {}

    @property
    def removed(self) -> bool:
        return self.mapped_component is None

    def try_map_property(self, property_name: str) -> Optional[MappedPropertyInfo]:
        moved = self._property_moves.get(property_name)
        if moved is not None:
            return MappedPropertyInfo(*moved)
        if self.mapped_component is None:
            return None
        return MappedPropertyInfo(self.mapped_component, property_name)

    def __repr__(self) -> str:
        return f"<MappedComponentInfo {self.original!r} -> {self.mapped_component!r}>"


class MappingSource(Protocol):
    def get_mapped_component(self, component: Component) -> MappedComponentInfo:
        ...


class ObjectMapping:
    """Records what happened to each component during one run."""

    def __init__(self):
        self._targets: Dict[Component, Any] = {}
        self._properties: Dict[Component, Dict[str, Tuple[Component, str]]] = {}

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_removed(self, component: Component) -> None:
        self._targets[component] = _REMOVED

    def record_merged(self, component: Component, into: Component) -> None:
        if component is into:
            return
        self._targets[component] = into
        logger.debug(f"[Mapping] {component!r} merged into {into!r}")

    def record_property(self,
                        component: Component,
                        property_name: str,
                        target: Component,
                        target_property: str) -> None:
        self._properties.setdefault(component, {})[property_name] = (target, target_property)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, component: Component) -> Optional[Component]:
        """Final location of `component`, or None if it was removed."""
        seen = set()
        current = component
        while current in self._targets:
            if current in seen:
                logger.warning(f"[Mapping] Cyclic mapping at {current!r}")
                return None
            seen.add(current)
            target = self._targets[current]
            if target is _REMOVED:
                return None
            current = target
        return current

    def get_mapped_component(self, component: Component) -> MappedComponentInfo:
        return MappedComponentInfo(
            component,
            self.resolve(component),
            self._properties.get(component),
        )

    def get_mapped_node(self, node: SceneNode) -> Optional[SceneNode]:
        """Node whose pivot now stands in for `node`'s pivot."""
        mapped = self.resolve(node.transform)
        return None if mapped is None else mapped.node

    def is_mapped(self, component: Component) -> bool:
        return component in self._targets

    def __len__(self) -> int:
        return len(self._targets)
