"""
End-to-end optimizer runs over a small humanoid rig.

    Avatar (Animator, humanoid bones: Hips, Head)
    ├── Body (SkinnedMeshRenderer over Hips, Spine, Chest, Head)
    ├── Armature
    │   └── Hips
    │       ├── Spine (0, 0.5, 0)
    │       │   └── Chest (0, 0.5, 0)
    │       │       └── Neck
    │       │           └── Head (0, 0.25, 0)
    │       └── Unused
    ├── Props (inactive, MeshRenderer)
    └── Helper (SpringBoneCollider)
"""
import json
from dataclasses import dataclass
from typing import Optional

import pytest

from rigsweep.analysis.modifications import AnimationModifications
from rigsweep.base.config import GCConfig, RigSweepConfig, set_config
from rigsweep.errors import ErrorCode
from rigsweep.graph.protocol import ComponentInformation, component_information
from rigsweep.optimizer import TraceOptimizer
from rigsweep.providers import default_registry
from rigsweep.reporting import ReportSeverity
from rigsweep.scene.components import (
    Animator,
    Behaviour,
    LookAtHead,
    MeshAsset,
    MeshRenderer,
    SkinnedMeshRenderer,
    SpringBoneCollider,
)
from rigsweep.scene.models import Component, SceneNode, Vector3


@dataclass(eq=False)
class Glitch(Behaviour):
    target: Optional[SceneNode] = None


@dataclass(eq=False)
class Mystery(Component):
    pass


@component_information(Glitch)
class GlitchInformation(ComponentInformation):
    def collect_dependency(self, component, collector):
        collector.add_dependency(component.target)
        raise RuntimeError("corrupt glitch data")


class StaticOracle:
    """Oracle that knows no animations and is not a modifications container."""

    def get_animated_flag(self, target, property_name, current_value):
        return current_value

    def is_parameter_used(self, name):
        return False


class Rig:
    def __init__(self, body_mesh=None):
        self.avatar = SceneNode("Avatar")
        self.body = self.avatar.add_child("Body")
        self.armature = self.avatar.add_child("Armature")
        self.hips = self.armature.add_child("Hips")
        self.spine = self.hips.add_child("Spine", local_position=Vector3(0.0, 0.5, 0.0))
        self.chest = self.spine.add_child("Chest", local_position=Vector3(0.0, 0.5, 0.0))
        self.neck = self.chest.add_child("Neck")
        self.head = self.neck.add_child("Head", local_position=Vector3(0.0, 0.25, 0.0))
        self.unused = self.hips.add_child("Unused")
        self.props = self.avatar.add_child("Props", active=False)
        self.helper = self.avatar.add_child("Helper")

        self.animator = self.avatar.add_component(Animator, humanoid_bones=[self.hips, self.head])
        self.skin = self.body.add_component(
            SkinnedMeshRenderer,
            mesh=body_mesh,
            bones=[self.hips, self.spine, self.chest, self.head],
            root_bone=self.hips,
        )
        self.prop_renderer = self.props.add_component(MeshRenderer)
        self.collider = self.helper.add_component(SpringBoneCollider)
        self.mods = AnimationModifications()

    def optimizer(self, config=None, registry=None, oracle=None, exclusions=()):
        optimizer = TraceOptimizer(
            self.avatar,
            registry=registry,
            oracle=oracle if oracle is not None else self.mods,
            config=config or RigSweepConfig(),
            exclusions=exclusions,
        )
        self.started, self.completed = [], []
        optimizer.pass_started.connect(self.started.append)
        optimizer.pass_completed.connect(lambda name, elapsed: self.completed.append(name))
        return optimizer

    def run(self, **kwargs):
        return self.optimizer(**kwargs).run()


@pytest.fixture
def rig():
    return Rig()


def test_full_pipeline(rig):
    result = rig.run()

    assert not result.failed
    assert rig.avatar.children == [rig.body, rig.hips, rig.props]
    assert {n.name for n in result.folded_nodes} == {"Neck", "Chest", "Spine", "Armature"}
    assert {n.name for n in result.removed_nodes} == {"Unused", "Helper"}
    assert rig.collider in result.removed_components
    assert rig.collider.destroyed


def test_inactive_entrypoint_is_kept(rig):
    rig.run()

    assert not rig.prop_renderer.destroyed
    assert not rig.props.destroyed


def test_inactive_group_keeps_its_inactive_mesh_hidden(rig):
    hidden = rig.avatar.add_child("Hidden", active=False)
    mesh = hidden.add_child("Mesh")
    renderer = mesh.add_component(MeshRenderer)

    result = rig.run()

    assert not result.failed
    assert not hidden.destroyed
    assert not renderer.destroyed
    assert mesh.parent is hidden
    assert hidden not in result.removed_nodes


def test_folded_bones_are_remapped(rig):
    rig.run()

    assert rig.skin.bones == [rig.hips, rig.hips, rig.hips, rig.head]
    assert rig.skin.root_bone is rig.hips


def test_head_keeps_its_world_pose(rig):
    rig.run()

    assert rig.head.parent is rig.hips
    assert rig.head.local_position.approx_equals(Vector3(0.0, 1.25, 0.0))


def test_mapping_reports_merges_and_removals(rig):
    result = rig.run()

    assert result.mapping.get_mapped_node(rig.chest) is rig.hips
    assert result.mapping.get_mapped_node(rig.armature) is rig.avatar
    assert result.mapping.get_mapped_node(rig.unused) is None
    assert result.mapping.get_mapped_component(rig.collider).removed


def test_pass_order_and_timings(rig):
    result = rig.run()

    expected = ["collect", "mark", "sweep", "bone_fold", "special_mapping"]
    assert rig.started == expected
    assert rig.completed == expected
    assert set(result.pass_timings) == set(expected)


def test_result_serializes(rig):
    result = rig.run()

    payload = json.loads(json.dumps(result.to_dict()))

    assert sorted(payload["folded_nodes"]) == ["Armature", "Chest", "Neck", "Spine"]
    assert payload["stats"]["components"] == 15
    assert payload["failed"] is False


def test_disabled_removal_leaves_hierarchy_untouched(rig):
    config = RigSweepConfig(gc=GCConfig(remove_unused_objects=False))

    result = rig.run(config=config)

    assert rig.started == []
    assert result.removed_nodes == [] and result.folded_nodes == []
    assert rig.avatar.children == [rig.body, rig.armature, rig.props, rig.helper]


def test_global_config_is_used_when_none_given(rig):
    set_config(RigSweepConfig(gc=GCConfig(remove_unused_objects=False)))

    result = TraceOptimizer(rig.avatar, oracle=rig.mods).run()

    assert result.removed_nodes == []
    assert not rig.unused.destroyed


def test_bone_fold_can_be_disabled(rig):
    config = RigSweepConfig(gc=GCConfig(configure_bone_fold=False))

    result = rig.run(config=config)

    assert "bone_fold" not in rig.started
    assert result.folded_nodes == []
    assert rig.neck.parent is rig.chest
    assert rig.unused.destroyed


def test_bone_fold_needs_modifications_container(rig):
    result = rig.run(oracle=StaticOracle())

    assert "bone_fold" not in rig.started
    assert result.folded_nodes == []
    assert result.report.entries_for("BONE_FOLD_SKIPPED")
    assert rig.helper.destroyed


def test_unreadable_mesh_pins_its_subtree():
    rig = Rig(body_mesh=MeshAsset("Body", readable=False))

    result = rig.run()

    [entry] = result.report.entries_for(ErrorCode.ASSET_UNREADABLE.value)
    assert entry.severity is ReportSeverity.ERROR
    assert result.stats.aborted_subtrees == 1
    assert not result.failed
    assert not rig.skin.destroyed
    assert rig.body.parent is rig.avatar
    # The rest of the hierarchy is still optimized
    assert rig.unused.destroyed
    assert rig.neck.destroyed


def test_exclusions_keep_whole_subtree(rig):
    result = rig.run(exclusions=[rig.helper])

    assert not rig.helper.destroyed
    assert not rig.collider.destroyed
    assert rig.helper not in result.folded_nodes
    assert rig.unused.destroyed


def test_provider_failure_keeps_component(rig):
    glitch = rig.unused.add_component(Glitch, target=rig.helper)

    result = rig.run(registry=default_registry(GlitchInformation))

    assert result.stats.provider_failures == 1
    [entry] = result.report.entries_for(ErrorCode.GRAPH_PROVIDER_FAILED.value)
    assert "corrupt glitch data" in entry.message
    assert entry.context == ["Avatar/Armature/Hips/Unused:Glitch"]
    assert not glitch.destroyed
    assert not rig.unused.destroyed
    # Edge declared before the failure still counts
    assert not rig.helper.destroyed
    assert rig.collider.destroyed


def test_missing_provider_reported_once(rig):
    first = rig.unused.add_component(Mystery)
    second = rig.helper.add_component(Mystery)

    result = rig.run()

    assert len(result.report.entries_for(ErrorCode.CONFIG_MISSING_PROVIDER.value)) == 1
    assert result.stats.fallback_components == 2
    assert not first.destroyed and not second.destroyed
    assert not rig.unused.destroyed and not rig.helper.destroyed
    assert rig.collider.destroyed


def test_registry_errors_are_reported(rig):
    registry = default_registry(GlitchInformation, GlitchInformation)
    rig.unused.add_component(Glitch)

    result = rig.run(registry=registry)

    assert result.report.entries_for(ErrorCode.CONFIG_DUPLICATE_PROVIDER.value)
    assert result.stats.provider_failures == 0
    assert not rig.unused.destroyed


def test_gc_debug_summary(rig):
    config = RigSweepConfig(gc=GCConfig(gc_debug=True))

    result = rig.run(config=config)

    summary = result.debug_summary
    assert summary is not None
    assert summary["components"] == 15
    assert summary["marked"] + summary["unmarked"] == 15
    assert summary["cycles"] == []


def test_enablement_schedule_for_look_at(rig):
    look = rig.body.add_component(LookAtHead, head=rig.head)

    result = rig.run()

    assert not look.destroyed
    assert result.enablement_schedule == {look: [rig.head.transform]}
    assert rig.head.parent is rig.hips


def test_unexpected_failure_is_reported(rig, monkeypatch):
    def explode(self):
        raise RuntimeError("sweep crashed")

    monkeypatch.setattr("rigsweep.optimizer.Sweeper.run", explode)

    result = rig.run()

    assert result.failed
    assert result.report.has_errors
    assert "sweep" in rig.started
    assert "sweep" not in rig.completed
    assert not rig.unused.destroyed
