"""
Providers for the built-in component catalogue.

Each provider classifies its component and declares what it needs. Edge
direction is always dependant -> dependency; "bidirectional" below means the
component needs the pivot AND the pivot (anything using that node) needs the
component, since the component moves it.
"""

import logging
from typing import List, Optional

from ..errors import ErrorCode, FatalAssetError
from ..graph.mapping import MappingSource
from ..graph.models import DependencyType
from ..graph.protocol import ComponentInformation, DependencySink, MutationSink, component_information
from ..graph.registry import ProviderRegistry
from ..scene.components import (
    AimConstraint,
    Animator,
    AudioSource,
    Constraint,
    LookAtHead,
    MeshRenderer,
    PositionConstraint,
    Renderer,
    RotationConstraint,
    SkinnedMeshRenderer,
    SpringBone,
    SpringBoneCollider,
)
from ..scene.models import POSITION_PROPERTIES, ROTATION_PROPERTIES, SceneNode, Transform

logger = logging.getLogger(__name__)


def _map_node(mapping_source: MappingSource, node: Optional[SceneNode]) -> Optional[SceneNode]:
    if node is None:
        return None
    mapped = mapping_source.get_mapped_component(node.transform).mapped_component
    return None if mapped is None else mapped.node


def _map_nodes(mapping_source: MappingSource, nodes: List[SceneNode]) -> List[SceneNode]:
    mapped = (_map_node(mapping_source, node) for node in nodes)
    return list(dict.fromkeys(n for n in mapped if n is not None))


@component_information(Transform)
class TransformInformation(ComponentInformation):
    # Pivot edges (component -> pivot, pivot -> parent) come from the collector
    def collect_dependency(self, component, collector):
        pass


# ============================================================================
# Renderers
# ============================================================================

class _RendererInformation(ComponentInformation):
    def collect_dependency(self, component: Renderer, collector: DependencySink) -> None:
        mesh = getattr(component, "mesh", None)
        if mesh is not None and not mesh.readable:
            raise FatalAssetError(
                f"Mesh '{mesh.name}' used by {component.display_name} cannot be read",
                code=ErrorCode.ASSET_UNREADABLE,
                details={"mesh": mesh.name, "component": component.display_name},
            )
        collector.mark_entrypoint()
        collector.add_dependency(component.probe_anchor)

    def apply_special_mapping(self, component: Renderer, mapping_source: MappingSource) -> None:
        component.probe_anchor = _map_node(mapping_source, component.probe_anchor)


@component_information(MeshRenderer)
class MeshRendererInformation(_RendererInformation):
    pass


@component_information(SkinnedMeshRenderer)
class SkinnedMeshRendererInformation(_RendererInformation):
    def collect_dependency(self, component: SkinnedMeshRenderer, collector: DependencySink) -> None:
        super().collect_dependency(component, collector)
        collector.add_dependency(component.root_bone, kind=DependencyType.BONE)
        for bone in component.bones:
            collector.add_dependency(bone, kind=DependencyType.BONE)

    def apply_special_mapping(self, component: SkinnedMeshRenderer, mapping_source: MappingSource) -> None:
        super().apply_special_mapping(component, mapping_source)
        # Bone indices are positional: keep slots, point them at the merged bone
        component.bones = [_map_node(mapping_source, bone) for bone in component.bones]
        component.root_bone = _map_node(mapping_source, component.root_bone)


# ============================================================================
# Animation
# ============================================================================

@component_information(Animator)
class AnimatorInformation(ComponentInformation):
    def collect_dependency(self, component: Animator, collector: DependencySink) -> None:
        collector.mark_entrypoint()

        # Bindings are relative paths: every node on the way must keep its name
        for node in component.animated_nodes:
            if node is not component.node and not node.is_descendant_of(component.node):
                logger.debug(f"[Providers] {node.path} is not bound by {component.display_name}")
                continue
            collector.add_path_dependency(node, component.node)

        for bone in component.humanoid_bones:
            collector.add_dependency(bone)


@component_information(RotationConstraint, PositionConstraint, AimConstraint)
class ConstraintInformation(ComponentInformation):
    def collect_dependency(self, component: Constraint, collector: DependencySink) -> None:
        collector.mark_heavy_behaviour()
        collector.add_dependency(component, dependant=component.node)
        collector.add_dependency(component.node)
        for source in component.sources:
            collector.add_dependency(source).only_if_target_can_be_enable()

    def collect_mutations(self, component: Constraint, collector: MutationSink) -> None:
        if isinstance(component, PositionConstraint):
            collector.modify_properties(component.node, POSITION_PROPERTIES)
        else:
            collector.modify_properties(component.node, ROTATION_PROPERTIES)

    def apply_special_mapping(self, component: Constraint, mapping_source: MappingSource) -> None:
        component.sources = _map_nodes(mapping_source, component.sources)


# ============================================================================
# Secondary motion
# ============================================================================

@component_information(SpringBone)
class SpringBoneInformation(ComponentInformation):
    def collect_dependency(self, component: SpringBone, collector: DependencySink) -> None:
        collector.mark_heavy_behaviour()
        if component.parameter and collector.is_parameter_used(component.parameter):
            collector.mark_entrypoint()

        for root_bone in component.root_bones:
            for node in root_bone.iter_descendants():
                collector.add_dependency(component, dependant=node)
                # End bones only carry the chain's tip position
                if node.children or collector.preserve_end_bone:
                    collector.add_dependency(node)

        for collider in component.colliders:
            collector.add_dependency(collider).only_if_target_can_be_enable()

    def collect_mutations(self, component: SpringBone, collector: MutationSink) -> None:
        for root_bone in component.root_bones:
            for node in root_bone.iter_descendants():
                collector.modify_properties(node, POSITION_PROPERTIES + ROTATION_PROPERTIES)

    def apply_special_mapping(self, component: SpringBone, mapping_source: MappingSource) -> None:
        component.root_bones = _map_nodes(mapping_source, component.root_bones)
        colliders = (mapping_source.get_mapped_component(c).mapped_component for c in component.colliders)
        component.colliders = [c for c in colliders if c is not None]


@component_information(SpringBoneCollider)
class SpringBoneColliderInformation(ComponentInformation):
    def collect_dependency(self, component, collector):
        pass


@component_information(LookAtHead)
class LookAtHeadInformation(ComponentInformation):
    def collect_dependency(self, component: LookAtHead, collector: DependencySink) -> None:
        collector.mark_heavy_behaviour()
        if component.head is None:
            return
        collector.add_dependency(component, dependant=component.head)
        collector.add_dependency(component.head)

    def apply_special_mapping(self, component: LookAtHead, mapping_source: MappingSource) -> None:
        component.head = _map_node(mapping_source, component.head)


# ============================================================================
# Audio
# ============================================================================

@component_information(AudioSource)
class AudioSourceInformation(ComponentInformation):
    def collect_dependency(self, component: AudioSource, collector: DependencySink) -> None:
        # Scripts may toggle playback through the enabled flag
        collector.mark_behaviour()
        collector.mark_entrypoint()


BUILTIN_PROVIDERS = (
    TransformInformation,
    MeshRendererInformation,
    SkinnedMeshRendererInformation,
    AnimatorInformation,
    ConstraintInformation,
    SpringBoneInformation,
    SpringBoneColliderInformation,
    LookAtHeadInformation,
    AudioSourceInformation,
)


def default_registry(*extra: ComponentInformation) -> ProviderRegistry:
    """Registry with every built-in provider plus `extra`."""
    registry = ProviderRegistry(BUILTIN_PROVIDERS)
    for provider in extra:
        registry.register(provider)
    return registry
