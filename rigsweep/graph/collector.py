"""
Dependency collection.

Walks the scene snapshot, asks each component's provider for its mutations
and dependencies, and fills a GraphStore. Also adds the structural edges every
hierarchy has: component -> its pivot, pivot -> parent pivot.

Failure handling never aborts the walk:
- no provider / duplicate providers: component classified ENTRYPOINT
- provider raised FatalAssetError: the component's subtree is pinned
- provider raised anything else: component classified ENTRYPOINT
- edge endpoint outside the graph or destroyed: edge dropped
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Protocol, Set

from ..analysis.modifications import AnimationOracle
from ..errors import ConfigurationError, FatalAssetError, handle_error
from ..reporting import BuildReport, ReportSeverity, describe
from ..scene.models import Component, SceneNode, Transform
from .models import Classification, DependencyCondition, DependencyType, GraphStore
from .protocol import DependencySink, MutationSink, PendingEdge
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


class MutationRecorder(Protocol):
    def record_mutation(self, target: Any, properties: Iterable[str]) -> None:
        ...


@dataclass
class CollectionStats:
    components: int = 0
    edges_added: int = 0
    edges_dropped: int = 0
    fallback_components: int = 0
    provider_failures: int = 0
    aborted_subtrees: int = 0


class DependencyCollector:
    """
    Builds the dependency graph for one hierarchy.

    Args:
        root: Root of the optimized hierarchy
        registry: Providers, resolved by exact component type
        oracle: Animation queries forwarded to providers
        report: Where configuration problems and provider failures go
        mutations: Receives collect_mutations output before dependency
            collection starts (usually the same container as `oracle`)
        preserve_end_bone: Forwarded to providers through the sink
    """

    def __init__(self,
                 root: SceneNode,
                 registry: ProviderRegistry,
                 oracle: AnimationOracle,
                 report: Optional[BuildReport] = None,
                 mutations: Optional[MutationRecorder] = None,
                 preserve_end_bone: bool = False):
        self.root = root
        self.registry = registry
        self.oracle = oracle
        self.report = report or BuildReport()
        self.mutations = mutations
        self.preserve_end_bone = preserve_end_bone

        self.store = GraphStore()
        self.stats = CollectionStats()
        self.aborted_roots: List[SceneNode] = []
        self._reported_types: Set[type] = set()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def collect_all(self) -> GraphStore:
        nodes = list(self.root.iter_descendants())
        components = [c for node in nodes for c in node.components]

        for component in components:
            self.store.add_component(component)
        self.stats.components = len(components)

        self._collect_mutations(components)

        for component in components:
            if component.destroyed:
                continue
            self._collect_component(component)

        self._invalidate_destroyed(components)
        self._add_structural_edges(nodes)

        logger.info(
            f"[Collector] {self.stats.components} components, "
            f"{self.stats.edges_added} edges ({self.stats.edges_dropped} dropped), "
            f"{self.stats.fallback_components} fallback, "
            f"{self.stats.aborted_subtrees} aborted subtrees"
        )
        return self.store

    def pinned_nodes(self) -> Set[SceneNode]:
        """Every node under a subtree aborted by a FatalAssetError."""
        pinned: Set[SceneNode] = set()
        for node in self.aborted_roots:
            pinned.update(node.iter_descendants())
        return pinned

    # ------------------------------------------------------------------
    # Provider passes
    # ------------------------------------------------------------------

    def _collect_mutations(self, components: List[Component]) -> None:
        if self.mutations is None:
            return

        for component in components:
            provider = self.registry.resolve(type(component))
            if provider is None:
                continue

            sink = MutationSink(component)
            try:
                provider.collect_mutations(component, sink)
            except FatalAssetError as e:
                self._abort_subtree(component, e)
            except Exception as e:
                error = handle_error(e, f"{provider.name}.collect_mutations")
                self.report.record_error(error, component)
            finally:
                mutations = sink.close()

            for target, properties in mutations:
                self.mutations.record_mutation(target, properties)

    def _collect_component(self, component: Component) -> None:
        record = self.store.record_for(component)
        if record is None:
            return

        provider = self.registry.resolve(type(component))
        if provider is None:
            if isinstance(component, Transform) and type(component) not in self.registry:
                # Pivots are structural; without a provider they are plain NONE
                if type(component) not in self._reported_types:
                    self._reported_types.add(type(component))
                    error = self.registry.lookup_error(type(component))
                    logger.debug(f"[Collector] Pivots stay unclassified: {error.message}")
                return
            self._fallback(component, self.registry.lookup_error(type(component)))
            return

        record.provider_name = provider.name
        sink = DependencySink(component, self.oracle, self.preserve_end_bone)
        try:
            provider.collect_dependency(component, sink)
        except FatalAssetError as e:
            self._abort_subtree(component, e)
        except Exception as e:
            error = handle_error(e, f"{provider.name}.collect_dependency")
            self.stats.provider_failures += 1
            self.report.record_error(error, component)
            record.classification |= Classification.ENTRYPOINT
            record.fallback = True
        finally:
            classification, edges = sink.close()

        record.classification |= classification
        self._commit(edges)

    def _fallback(self, component: Component, error: ConfigurationError) -> None:
        record = self.store.record_for(component)
        record.classification = Classification.ENTRYPOINT
        record.fallback = True
        self.stats.fallback_components += 1

        component_type = type(component)
        if component_type in self._reported_types:
            logger.debug(f"[Collector] Fallback ENTRYPOINT for {component.display_name}")
            return
        self._reported_types.add(component_type)
        self.report.record_error(error, component)

    def _abort_subtree(self, component: Component, error: FatalAssetError) -> None:
        node = component.node
        self.report.record_error(error, component, severity=ReportSeverity.ERROR)
        if any(node is root or node.is_descendant_of(root) for root in self.aborted_roots):
            return
        self.aborted_roots.append(node)
        self.stats.aborted_subtrees += 1
        logger.error(f"[Collector] Optimization aborted for subtree {node.path}: {error.message}")

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def _commit(self, edges: List[PendingEdge]) -> None:
        for edge in edges:
            dependant = self.store.index_of(edge.dependant)
            dependency = self.store.index_of(edge.dependency)
            if dependant is None or dependency is None:
                self.stats.edges_dropped += 1
                logger.debug(
                    f"[Collector] Dropped edge {describe(edge.dependant)} -> "
                    f"{describe(edge.dependency)}: endpoint not in graph"
                )
                continue
            self.store.add_edge(dependant, dependency, edge.conditions, edge.kind)
            self.stats.edges_added += 1

    def _invalidate_destroyed(self, components: List[Component]) -> None:
        for component in components:
            if component.destroyed:
                self.store.invalidate(component)
                logger.debug(f"[Collector] {component!r} destroyed during collection")

    def _add_structural_edges(self, nodes: List[SceneNode]) -> None:
        always = DependencyCondition.EVEN_IF_DEPENDANT_DISABLED
        for node in nodes:
            if node.destroyed:
                continue
            pivot = self.store.pivot_index(node)
            if pivot is None:
                continue

            for component in node.components[1:]:
                index = self.store.index_of(component)
                if index is not None:
                    self.store.add_edge(index, pivot, always, DependencyType.COMPONENT_TO_TRANSFORM)

            if node is not self.root and node.parent is not None:
                parent_pivot = self.store.pivot_index(node.parent)
                if parent_pivot is not None:
                    self.store.add_edge(pivot, parent_pivot, always, DependencyType.PARENT)
