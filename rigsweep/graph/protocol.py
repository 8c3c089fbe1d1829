"""
Edge-discovery protocol.

A provider (ComponentInformation subclass) describes one or more concrete
component types. For every component of those types the collector hands the
provider a DependencySink; the provider classifies the component and declares
its dependencies through it. Sinks are closed as soon as the provider call
returns.

Example:

    @component_information(RotationConstraint)
    class RotationConstraintInformation(ComponentInformation):
        def collect_dependency(self, component, collector):
            collector.mark_heavy_behaviour()
            for source in component.sources:
                collector.add_dependency(source)

        def collect_mutations(self, component, collector):
            collector.modify_properties(component.node, ROTATION_PROPERTIES)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Tuple, Type

from ..errors import ErrorCode, GraphConsistencyError, SinkClosedError
from ..scene.models import Component, SceneNode
from .models import Classification, DependencyCondition, DependencyType

if TYPE_CHECKING:
    from ..analysis.modifications import AnimationOracle
    from .mapping import MappingSource


class ComponentInformation:
    """
    Base class for per-type edge-discovery providers.

    Subclasses set `target_types` (usually through @component_information)
    and implement collect_dependency. The other two hooks are optional.
    """

    target_types: Tuple[Type[Component], ...] = ()

    @property
    def name(self) -> str:
        return type(self).__name__

    def collect_dependency(self, component: Component, collector: "DependencySink") -> None:
        raise NotImplementedError

    def collect_mutations(self, component: Component, collector: "MutationSink") -> None:
        pass

    def apply_special_mapping(self, component: Component, mapping_source: "MappingSource") -> None:
        pass


def component_information(*target_types: Type[Component]):
    """Class decorator declaring which concrete types a provider describes."""
    def decorator(cls):
        cls.target_types = tuple(target_types)
        return cls
    return decorator


@dataclass
class PendingEdge:
    """An edge declared by a provider, resolved to indices on commit."""
    dependant: Any
    dependency: Any
    conditions: DependencyCondition = DependencyCondition.DEFAULT
    kind: DependencyType = DependencyType.NORMAL


class _SinkBase:
    def __init__(self):
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SinkClosedError(
                "Sink used after its provider call returned",
                code=ErrorCode.SINK_CLOSED,
            )


class DependencyInfo:
    """
    Configuration handle for the edges created by one add_dependency or
    add_path_dependency call.

    Each call returns a fresh handle that only touches its own edges, so an
    old handle can never reconfigure a later edge. Handles die with their sink.
    """

    def __init__(self, sink: _SinkBase, edges: List[PendingEdge]):
        self._sink = sink
        self._edges = edges

    def even_if_dependant_disabled(self) -> "DependencyInfo":
        return self._add(DependencyCondition.EVEN_IF_DEPENDANT_DISABLED)

    def only_if_target_can_be_enable(self) -> "DependencyInfo":
        return self._add(DependencyCondition.ONLY_IF_TARGET_CAN_BE_ENABLE)

    def _add(self, condition: DependencyCondition) -> "DependencyInfo":
        self._sink._ensure_open()
        for edge in self._edges:
            edge.conditions |= condition
        return self

    def __len__(self) -> int:
        return len(self._edges)


class DependencySink(_SinkBase):
    """
    Write-only sink handed to ComponentInformation.collect_dependency.

    Also exposes the read-only oracle queries providers may need to decide
    what to declare.
    """

    def __init__(self,
                 component: Component,
                 oracle: "AnimationOracle",
                 preserve_end_bone: bool = False):
        super().__init__()
        self.component = component
        self.preserve_end_bone = preserve_end_bone
        self._oracle = oracle
        self._classification = Classification.NONE
        self._edges: List[PendingEdge] = []

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def mark_entrypoint(self) -> None:
        self._ensure_open()
        self._classification |= Classification.ENTRYPOINT

    def mark_heavy_behaviour(self) -> None:
        self._ensure_open()
        self._classification |= Classification.HEAVY_BEHAVIOUR

    def mark_behaviour(self) -> None:
        self._ensure_open()
        self._classification |= Classification.BEHAVIOUR

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def add_dependency(self,
                       dependency: Any,
                       dependant: Any = None,
                       kind: DependencyType = DependencyType.NORMAL) -> DependencyInfo:
        """
        Declare that `dependant` (default: the current component) needs
        `dependency`. Either may be a component or a node (its pivot).
        A None dependency is accepted and ignored.
        """
        self._ensure_open()
        if dependency is None:
            return DependencyInfo(self, [])
        edge = PendingEdge(
            dependant=self.component if dependant is None else dependant,
            dependency=dependency,
            kind=kind,
        )
        self._edges.append(edge)
        return DependencyInfo(self, [edge])

    def add_path_dependency(self, from_node: SceneNode, to_root: SceneNode) -> DependencyInfo:
        """
        Declare a dependency on every pivot from `from_node` up to, but not
        including, `to_root`: the nodes a relative path walks through.
        """
        self._ensure_open()
        if from_node is not to_root and not from_node.is_descendant_of(to_root):
            raise GraphConsistencyError(
                f"{from_node.path} is not under {to_root.path}",
                code=ErrorCode.GRAPH_INVALID_PATH,
                details={"from": from_node.path, "root": to_root.path},
            )

        edges: List[PendingEdge] = []
        current = from_node
        while current is not to_root:
            edges.append(PendingEdge(dependant=self.component, dependency=current))
            current = current.parent
        self._edges.extend(edges)
        return DependencyInfo(self, edges)

    # ------------------------------------------------------------------
    # Oracle queries
    # ------------------------------------------------------------------

    def get_animated_flag(self, target: Any, property_name: str, current_value: bool) -> Optional[bool]:
        return self._oracle.get_animated_flag(target, property_name, current_value)

    def is_parameter_used(self, name: str) -> bool:
        return self._oracle.is_parameter_used(name)

    # ------------------------------------------------------------------

    def close(self) -> Tuple[Classification, List[PendingEdge]]:
        self._closed = True
        return self._classification, self._edges


class MutationSink(_SinkBase):
    """Write-only sink handed to ComponentInformation.collect_mutations."""

    def __init__(self, component: Component):
        super().__init__()
        self.component = component
        self._mutations: List[Tuple[Any, Tuple[str, ...]]] = []

    def modify_properties(self, target: Any, properties: Iterable[str]) -> None:
        """Register that the current component changes `properties` of `target`."""
        self._ensure_open()
        if target is None:
            return
        self._mutations.append((target, tuple(properties)))

    def close(self) -> List[Tuple[Any, Tuple[str, ...]]]:
        self._closed = True
        return self._mutations
