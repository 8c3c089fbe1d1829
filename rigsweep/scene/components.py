"""
Built-in component catalogue.

These are the component types the built-in providers know about. Third-party
component types subclass Component and register their own provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .models import Component, SceneNode


@dataclass(frozen=True)
class MeshAsset:
    """Reference to an external mesh resource."""
    name: str
    readable: bool = True


@dataclass(eq=False)
class Behaviour(Component):
    """A component whose enabled state can be toggled."""
    enabled: Optional[bool] = True


@dataclass(eq=False)
class Renderer(Behaviour):
    probe_anchor: Optional[SceneNode] = None


@dataclass(eq=False)
class MeshRenderer(Renderer):
    mesh: Optional[MeshAsset] = None


@dataclass(eq=False)
class SkinnedMeshRenderer(Renderer):
    mesh: Optional[MeshAsset] = None
    bones: List[Optional[SceneNode]] = field(default_factory=list)
    root_bone: Optional[SceneNode] = None


@dataclass(eq=False)
class Animator(Behaviour):
    controller: Optional[str] = None
    # Nodes bound by relative path from this animator's node
    animated_nodes: List[SceneNode] = field(default_factory=list)
    # Humanoid bone mapping; these must keep their identity
    humanoid_bones: List[SceneNode] = field(default_factory=list)


@dataclass(eq=False)
class Constraint(Behaviour):
    sources: List[SceneNode] = field(default_factory=list)


@dataclass(eq=False)
class RotationConstraint(Constraint):
    pass


@dataclass(eq=False)
class PositionConstraint(Constraint):
    pass


@dataclass(eq=False)
class AimConstraint(Constraint):
    pass


@dataclass(eq=False)
class SpringBoneCollider(Behaviour):
    radius: float = 0.1


@dataclass(eq=False)
class SpringBone(Behaviour):
    root_bones: List[SceneNode] = field(default_factory=list)
    colliders: List[SpringBoneCollider] = field(default_factory=list)
    # Animator parameter this spring bone writes its state to
    parameter: Optional[str] = None


@dataclass(eq=False)
class AudioSource(Behaviour):
    clip: Optional[str] = None


@dataclass(eq=False)
class LookAtHead(Behaviour):
    head: Optional[SceneNode] = None
