"""
Tests for the edge-discovery sinks and their configuration handles.
"""

import pytest

from rigsweep.analysis.modifications import AnimationModifications
from rigsweep.errors import ErrorCode, GraphConsistencyError, SinkClosedError
from rigsweep.graph.models import Classification, DependencyCondition, DependencyType
from rigsweep.graph.protocol import (
    ComponentInformation,
    DependencySink,
    MutationSink,
    component_information,
)
from rigsweep.scene.components import AudioSource, LookAtHead
from rigsweep.scene.models import PROP_ACTIVE, SceneNode


def make_sink(component, oracle=None, preserve_end_bone=False):
    return DependencySink(component, oracle or AnimationModifications(), preserve_end_bone)


@pytest.fixture
def rig():
    root = SceneNode("Root")
    a = root.add_child("A")
    b = a.add_child("B")
    c = b.add_child("C")
    audio = root.add_component(AudioSource)
    return root, a, b, c, audio


def test_classification_accumulates(rig):
    _, _, _, _, audio = rig
    sink = make_sink(audio)

    sink.mark_heavy_behaviour()
    sink.mark_behaviour()
    classification, edges = sink.close()

    assert classification == Classification.HEAVY_BEHAVIOUR | Classification.BEHAVIOUR
    assert edges == []


def test_add_dependency_defaults(rig):
    _, a, _, _, audio = rig
    sink = make_sink(audio)

    sink.add_dependency(a)
    _, (edge,) = sink.close()

    assert edge.dependant is audio
    assert edge.dependency is a
    assert edge.conditions == DependencyCondition.DEFAULT
    assert edge.kind == DependencyType.NORMAL


def test_explicit_dependant_and_kind(rig):
    _, a, b, _, audio = rig
    sink = make_sink(audio)

    sink.add_dependency(a, dependant=b, kind=DependencyType.BONE)
    _, (edge,) = sink.close()

    assert edge.dependant is b
    assert edge.kind == DependencyType.BONE


def test_none_dependency_is_ignored(rig):
    _, _, _, _, audio = rig
    sink = make_sink(audio)

    handle = sink.add_dependency(None)
    handle.even_if_dependant_disabled()

    assert len(handle) == 0
    assert sink.close()[1] == []


def test_handles_only_touch_their_own_edges(rig):
    _, a, b, _, audio = rig
    sink = make_sink(audio)

    first = sink.add_dependency(a)
    sink.add_dependency(b)
    first.even_if_dependant_disabled()

    _, edges = sink.close()
    assert edges[0].conditions == DependencyCondition.EVEN_IF_DEPENDANT_DISABLED
    assert edges[1].conditions == DependencyCondition.DEFAULT


def test_handles_chain(rig):
    _, a, _, _, audio = rig
    sink = make_sink(audio)

    sink.add_dependency(a).even_if_dependant_disabled().only_if_target_can_be_enable()

    _, (edge,) = sink.close()
    assert edge.conditions == (
        DependencyCondition.EVEN_IF_DEPENDANT_DISABLED
        | DependencyCondition.ONLY_IF_TARGET_CAN_BE_ENABLE
    )


def test_closed_sink_rejects_every_call(rig):
    _, a, _, _, audio = rig
    sink = make_sink(audio)
    handle = sink.add_dependency(a)
    sink.close()

    assert sink.closed
    with pytest.raises(SinkClosedError):
        sink.mark_entrypoint()
    with pytest.raises(SinkClosedError):
        sink.add_dependency(a)
    with pytest.raises(SinkClosedError) as excinfo:
        handle.even_if_dependant_disabled()
    assert excinfo.value.code == ErrorCode.SINK_CLOSED


def test_path_dependency_expands_to_every_ancestor_below_root(rig):
    root, a, b, c, audio = rig
    sink = make_sink(audio)

    handle = sink.add_path_dependency(c, root)

    _, edges = sink.close()
    assert [e.dependency for e in edges] == [c, b, a]
    assert all(e.dependant is audio for e in edges)
    assert len(handle) == 3


def test_path_dependency_on_root_itself_is_empty(rig):
    root, _, _, _, audio = rig
    sink = make_sink(audio)

    assert len(sink.add_path_dependency(root, root)) == 0


def test_path_dependency_outside_root_raises(rig):
    _, a, _, _, audio = rig
    sink = make_sink(audio)
    stranger = SceneNode("Stranger")

    with pytest.raises(GraphConsistencyError) as excinfo:
        sink.add_path_dependency(stranger, a)
    assert excinfo.value.code == ErrorCode.GRAPH_INVALID_PATH


def test_oracle_queries_are_forwarded(rig):
    _, a, _, _, audio = rig
    mods = AnimationModifications()
    mods.record(a, PROP_ACTIVE, [False], always_applied=True)
    mods.mark_parameter_used("Blink")
    sink = make_sink(audio, mods, preserve_end_bone=True)

    assert sink.get_animated_flag(a, PROP_ACTIVE, True) is False
    assert sink.is_parameter_used("Blink")
    assert not sink.is_parameter_used("Wink")
    assert sink.preserve_end_bone


def test_mutation_sink(rig):
    _, a, _, _, audio = rig
    sink = MutationSink(audio)

    sink.modify_properties(a, ["local_position.x"])
    sink.modify_properties(None, ["local_position.y"])

    assert sink.close() == [(a, ("local_position.x",))]
    with pytest.raises(SinkClosedError):
        sink.modify_properties(a, ["local_position.z"])


def test_component_information_defaults(rig):
    _, _, _, _, audio = rig

    @component_information(AudioSource, LookAtHead)
    class Family(ComponentInformation):
        pass

    provider = Family()
    assert provider.target_types == (AudioSource, LookAtHead)
    assert provider.name == "Family"
    provider.collect_mutations(audio, MutationSink(audio))
    provider.apply_special_mapping(audio, None)
    with pytest.raises(NotImplementedError):
        provider.collect_dependency(audio, make_sink(audio))
