"""
Dependency graph: mark-and-sweep reachability over a rig hierarchy.

Core Components:
- GraphStore: integer-indexed arena, one record per component
- ComponentInformation / DependencySink: per-type edge-discovery protocol
- ProviderRegistry: exactly one provider per concrete component type
- DependencyCollector: walks the scene and fills the store
- ReachabilityMarker: worklist fixpoint from the seed set
- Sweeper: deletes what the marker did not reach
- BoneFolder: collapses pure-pivot nodes into their parents
- ObjectMapping: where removed and folded components went
"""

from .models import (
    Classification,
    DependencyCondition,
    DependencyEdge,
    DependencyType,
    GraphNode,
    GraphStore,
)
from .protocol import (
    ComponentInformation,
    DependencyInfo,
    DependencySink,
    MutationSink,
    component_information,
)
from .registry import ProviderRegistry
from .collector import CollectionStats, DependencyCollector
from .marker import MarkResult, ReachabilityMarker
from .sweep import Sweeper, SweepResult
from .bone_fold import BoneFolder, FoldResult
from .mapping import MappedComponentInfo, MappedPropertyInfo, MappingSource, ObjectMapping

__all__ = [
    'Classification',
    'DependencyCondition',
    'DependencyEdge',
    'DependencyType',
    'GraphNode',
    'GraphStore',
    'ComponentInformation',
    'DependencyInfo',
    'DependencySink',
    'MutationSink',
    'component_information',
    'ProviderRegistry',
    'CollectionStats',
    'DependencyCollector',
    'MarkResult',
    'ReachabilityMarker',
    'Sweeper',
    'SweepResult',
    'BoneFolder',
    'FoldResult',
    'MappedComponentInfo',
    'MappedPropertyInfo',
    'MappingSource',
    'ObjectMapping',
]
