"""Tests for the built-in component providers."""
import pytest

from rigsweep.analysis.modifications import AnimationModifications
from rigsweep.errors import ErrorCode
from rigsweep.graph.collector import DependencyCollector
from rigsweep.graph.mapping import ObjectMapping
from rigsweep.graph.models import Classification, DependencyCondition, DependencyType
from rigsweep.providers import BUILTIN_PROVIDERS, default_registry
from rigsweep.scene.components import (
    Animator,
    AudioSource,
    LookAtHead,
    MeshAsset,
    MeshRenderer,
    PositionConstraint,
    RotationConstraint,
    SkinnedMeshRenderer,
    SpringBone,
    SpringBoneCollider,
)
from rigsweep.scene.models import POSITION_PROPERTIES, ROTATION_PROPERTIES, SceneNode

DEFAULT = DependencyCondition.DEFAULT
ONLY_IF = DependencyCondition.ONLY_IF_TARGET_CAN_BE_ENABLE
NORMAL = DependencyType.NORMAL
BONE = DependencyType.BONE


class Harness:
    def __init__(self, preserve_end_bone=False):
        self.root = SceneNode("Root")
        self.mods = AnimationModifications()
        self.preserve_end_bone = preserve_end_bone

    def collect(self):
        self.collector = DependencyCollector(
            self.root, default_registry(), self.mods,
            mutations=self.mods, preserve_end_bone=self.preserve_end_bone,
        )
        self.store = self.collector.collect_all()
        return self.store

    def edges_from(self, dependant):
        """Provider edges (structural ones excluded) as (dependency name, conditions, kind)."""
        index = self.store.index_of(dependant)
        return {
            (self.store.component_at(e.dependency).display_name, e.conditions, e.kind)
            for e in self.store.edges()
            if e.dependant == index and e.kind not in (DependencyType.PARENT, DependencyType.COMPONENT_TO_TRANSFORM)
        }

    def classification(self, component):
        return self.store.record_for(component).classification


@pytest.fixture
def harness():
    return Harness()


def test_default_registry_covers_catalogue():
    registry = default_registry()

    assert len(BUILTIN_PROVIDERS) == 9
    assert len(registry) == 11
    assert registry.errors == []
    assert registry.resolve(AudioSource).name == "AudioSourceInformation"


def test_mesh_renderer(harness):
    anchor = harness.root.add_child("Anchor")
    renderer = harness.root.add_component(MeshRenderer, probe_anchor=anchor, mesh=MeshAsset("Body"))

    harness.collect()

    assert harness.classification(renderer) == Classification.ENTRYPOINT
    assert harness.edges_from(renderer) == {("Root/Anchor:Transform", DEFAULT, NORMAL)}


def test_unreadable_mesh_aborts_subtree(harness):
    body = harness.root.add_child("Body")
    body.add_component(SkinnedMeshRenderer, mesh=MeshAsset("Body", readable=False))

    harness.collect()

    assert harness.collector.aborted_roots == [body]
    [entry] = harness.collector.report.entries_for(ErrorCode.ASSET_UNREADABLE.value)
    assert entry.severity.value == "error"
    assert entry.details["mesh"] == "Body"


def test_skinned_mesh_bones(harness):
    hips = harness.root.add_child("Hips")
    spine = hips.add_child("Spine")
    skin = harness.root.add_component(SkinnedMeshRenderer, bones=[hips, spine, None], root_bone=hips)

    harness.collect()

    assert harness.edges_from(skin) == {
        ("Root/Hips:Transform", DEFAULT, BONE),
        ("Root/Hips/Spine:Transform", DEFAULT, BONE),
    }


def test_animator_paths_and_humanoid_bones(harness):
    avatar = harness.root.add_child("Avatar")
    arm = avatar.add_child("Arm")
    hand = arm.add_child("Hand")
    outside = harness.root.add_child("Outside")
    head = avatar.add_child("Head")
    animator = avatar.add_component(Animator, animated_nodes=[hand, outside], humanoid_bones=[head])

    harness.collect()

    assert harness.classification(animator) == Classification.ENTRYPOINT
    assert harness.edges_from(animator) == {
        ("Root/Avatar/Arm/Hand:Transform", DEFAULT, NORMAL),
        ("Root/Avatar/Arm:Transform", DEFAULT, NORMAL),
        ("Root/Avatar/Head:Transform", DEFAULT, NORMAL),
    }


def test_rotation_constraint(harness):
    arm = harness.root.add_child("Arm")
    target = harness.root.add_child("Target")
    constraint = arm.add_component(RotationConstraint, sources=[target])

    harness.collect()

    assert harness.classification(constraint) == Classification.HEAVY_BEHAVIOUR
    assert harness.edges_from(constraint) == {
        ("Root/Arm:Transform", DEFAULT, NORMAL),
        ("Root/Target:Transform", ONLY_IF, NORMAL),
    }
    assert harness.edges_from(arm) == {("Root/Arm:RotationConstraint", DEFAULT, NORMAL)}
    assert harness.mods.is_animated(arm, ROTATION_PROPERTIES)
    assert not harness.mods.is_animated(arm, POSITION_PROPERTIES)


def test_position_constraint_mutates_position(harness):
    arm = harness.root.add_child("Arm")
    arm.add_component(PositionConstraint)

    harness.collect()

    assert harness.mods.is_animated(arm, POSITION_PROPERTIES)
    assert not harness.mods.is_animated(arm, ROTATION_PROPERTIES)


@pytest.mark.parametrize("preserve_end_bone", [False, True])
def test_spring_bone_chain(preserve_end_bone):
    harness = Harness(preserve_end_bone=preserve_end_bone)
    hair = harness.root.add_child("Hair")
    tip = hair.add_child("Tip")
    collider = harness.root.add_component(SpringBoneCollider)
    spring = harness.root.add_component(SpringBone, root_bones=[hair], colliders=[collider])

    harness.collect()

    expected = {
        ("Root/Hair:Transform", DEFAULT, NORMAL),
        ("Root:SpringBoneCollider", ONLY_IF, NORMAL),
    }
    if preserve_end_bone:
        expected.add(("Root/Hair/Tip:Transform", DEFAULT, NORMAL))
    assert harness.edges_from(spring) == expected
    assert harness.edges_from(tip) == {("Root:SpringBone", DEFAULT, NORMAL)}
    assert harness.classification(spring) == Classification.HEAVY_BEHAVIOUR
    assert harness.mods.is_animated(tip, POSITION_PROPERTIES)


def test_spring_bone_parameter_makes_it_observable(harness):
    harness.mods.mark_parameter_used("Wiggle")
    spring = harness.root.add_component(SpringBone, parameter="Wiggle")

    harness.collect()

    assert harness.classification(spring) == Classification.HEAVY_BEHAVIOUR | Classification.ENTRYPOINT


def test_look_at_head(harness):
    head = harness.root.add_child("Head")
    look = harness.root.add_component(LookAtHead, head=head)
    idle = harness.root.add_component(LookAtHead)

    harness.collect()

    assert harness.edges_from(look) == {("Root/Head:Transform", DEFAULT, NORMAL)}
    assert harness.edges_from(head) == {("Root:LookAtHead", DEFAULT, NORMAL)}
    assert harness.edges_from(idle) == set()


def test_audio_source(harness):
    audio = harness.root.add_component(AudioSource)

    harness.collect()

    assert harness.classification(audio) == Classification.BEHAVIOUR | Classification.ENTRYPOINT


def test_special_mapping_follows_merged_nodes():
    root = SceneNode("Root")
    hips = root.add_child("Hips")
    spine = hips.add_child("Spine")
    gone = root.add_child("Gone")
    skin = root.add_component(SkinnedMeshRenderer, bones=[hips, spine, gone], root_bone=spine)
    constraint = root.add_component(RotationConstraint, sources=[spine, hips, gone])
    mapping = ObjectMapping()
    mapping.record_merged(spine.transform, hips.transform)
    mapping.record_removed(gone.transform)
    registry = default_registry()

    registry.resolve(SkinnedMeshRenderer).apply_special_mapping(skin, mapping)
    registry.resolve(RotationConstraint).apply_special_mapping(constraint, mapping)

    assert skin.bones == [hips, hips, None]
    assert skin.root_bone is hips
    assert constraint.sources == [hips]
