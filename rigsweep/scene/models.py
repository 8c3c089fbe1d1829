"""
Scene snapshot models.

A rig is a tree of SceneNodes. Every node owns exactly one Transform (its
pivot) plus any number of behaviour components. Identity is reference based:
two nodes with the same name are still different nodes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Type, TypeVar

# Animatable property names understood by the analysis layer
PROP_ACTIVE = "active"
PROP_ENABLED = "enabled"

POSITION_PROPERTIES = ("local_position.x", "local_position.y", "local_position.z")
ROTATION_PROPERTIES = (
    "local_rotation.x", "local_rotation.y", "local_rotation.z", "local_rotation.w",
    "local_euler.x", "local_euler.y", "local_euler.z",
)
SCALE_PROPERTIES = ("local_scale.x", "local_scale.y", "local_scale.z")
TRANSFORM_PROPERTIES = POSITION_PROPERTIES + ROTATION_PROPERTIES + SCALE_PROPERTIES

_EPSILON = 1e-6

C = TypeVar("C", bound="Component")


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @staticmethod
    def one() -> "Vector3":
        return Vector3(1.0, 1.0, 1.0)

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __mul__(self, scalar: float) -> "Vector3":
        return Vector3(self.x * scalar, self.y * scalar, self.z * scalar)

    def scaled(self, other: "Vector3") -> "Vector3":
        """Component-wise product."""
        return Vector3(self.x * other.x, self.y * other.y, self.z * other.z)

    def approx_equals(self, other: "Vector3", tolerance: float = _EPSILON) -> bool:
        return (
            abs(self.x - other.x) <= tolerance
            and abs(self.y - other.y) <= tolerance
            and abs(self.z - other.z) <= tolerance
        )

    def is_uniform(self, tolerance: float = _EPSILON) -> bool:
        """True when all three axes carry the same scale."""
        return abs(self.x - self.y) <= tolerance and abs(self.y - self.z) <= tolerance


@dataclass(frozen=True)
class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @staticmethod
    def identity() -> "Quaternion":
        return Quaternion()

    @staticmethod
    def from_axis_angle(axis: Vector3, degrees: float) -> "Quaternion":
        length = math.sqrt(axis.x ** 2 + axis.y ** 2 + axis.z ** 2)
        if length == 0.0:
            return Quaternion()
        half = math.radians(degrees) / 2.0
        s = math.sin(half) / length
        return Quaternion(axis.x * s, axis.y * s, axis.z * s, math.cos(half))

    def __mul__(self, other: "Quaternion") -> "Quaternion":
        return Quaternion(
            self.w * other.x + self.x * other.w + self.y * other.z - self.z * other.y,
            self.w * other.y - self.x * other.z + self.y * other.w + self.z * other.x,
            self.w * other.z + self.x * other.y - self.y * other.x + self.z * other.w,
            self.w * other.w - self.x * other.x - self.y * other.y - self.z * other.z,
        )

    def rotate(self, v: Vector3) -> Vector3:
        """Rotate a vector by this (unit) quaternion."""
        # v' = v + 2w(q x v) + 2(q x (q x v))
        qx, qy, qz, w = self.x, self.y, self.z, self.w
        tx = 2.0 * (qy * v.z - qz * v.y)
        ty = 2.0 * (qz * v.x - qx * v.z)
        tz = 2.0 * (qx * v.y - qy * v.x)
        return Vector3(
            v.x + w * tx + (qy * tz - qz * ty),
            v.y + w * ty + (qz * tx - qx * tz),
            v.z + w * tz + (qx * ty - qy * tx),
        )

    def is_identity(self, tolerance: float = _EPSILON) -> bool:
        # q and -q are the same rotation
        return (
            abs(self.x) <= tolerance
            and abs(self.y) <= tolerance
            and abs(self.z) <= tolerance
            and abs(abs(self.w) - 1.0) <= tolerance
        )

    def approx_equals(self, other: "Quaternion", tolerance: float = _EPSILON) -> bool:
        dot = self.x * other.x + self.y * other.y + self.z * other.z + self.w * other.w
        return abs(abs(dot) - 1.0) <= tolerance


@dataclass(eq=False)
class Component:
    """
    A typed behaviour instance attached to exactly one SceneNode.

    `enabled` is None for components that cannot be toggled.
    """
    node: "SceneNode" = field(repr=False)
    enabled: Optional[bool] = None
    destroyed: bool = field(default=False, init=False, repr=False)

    @property
    def display_name(self) -> str:
        return f"{self.node.path}:{type(self).__name__}"

    def destroy(self) -> None:
        if self.destroyed:
            return
        if self in self.node.components:
            self.node.components.remove(self)
        self.destroyed = True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.node.path}>"


@dataclass(eq=False, repr=False)
class Transform(Component):
    """The pivot of a node. Created with the node, never added by hand."""


@dataclass(eq=False)
class SceneNode:
    """
    A hierarchical container: one parent, ordered children, attached components.
    """
    name: str
    parent: Optional["SceneNode"] = field(default=None, repr=False)
    active: bool = True
    local_position: Vector3 = field(default_factory=Vector3)
    local_rotation: Quaternion = field(default_factory=Quaternion)
    local_scale: Vector3 = field(default_factory=Vector3.one)
    children: List["SceneNode"] = field(default_factory=list, init=False, repr=False)
    components: List[Component] = field(default_factory=list, init=False, repr=False)
    destroyed: bool = field(default=False, init=False, repr=False)
    pivot: Transform = field(init=False, repr=False)

    def __post_init__(self):
        self.pivot = Transform(node=self)
        self.components.append(self.pivot)
        if self.parent is not None:
            self.parent.children.append(self)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def add_child(self, name: str, **kwargs) -> "SceneNode":
        return SceneNode(name, parent=self, **kwargs)

    def add_component(self, component_type: Type[C], **kwargs) -> C:
        component = component_type(node=self, **kwargs)
        self.components.append(component)
        return component

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def transform(self) -> Transform:
        return self.pivot

    @property
    def path(self) -> str:
        parts = []
        current: Optional[SceneNode] = self
        while current is not None:
            parts.append(current.name)
            current = current.parent
        return "/".join(reversed(parts))

    def get_component(self, component_type: Type[C]) -> Optional[C]:
        for component in self.components:
            if isinstance(component, component_type):
                return component
        return None

    def get_components(self, component_type: Type[C]) -> List[C]:
        return [c for c in self.components if isinstance(c, component_type)]

    def iter_descendants(self) -> Iterator["SceneNode"]:
        """Pre-order walk including this node."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def is_descendant_of(self, other: "SceneNode") -> bool:
        current = self.parent
        while current is not None:
            if current is other:
                return True
            current = current.parent
        return False

    def has_identity_transform(self) -> bool:
        return (
            self.local_position.approx_equals(Vector3())
            and self.local_rotation.is_identity()
            and self.local_scale.approx_equals(Vector3.one())
        )

    # ------------------------------------------------------------------
    # Mutation (used by Sweep and Bone-Fold only)
    # ------------------------------------------------------------------

    def set_parent(self, new_parent: Optional["SceneNode"], index: Optional[int] = None) -> None:
        if self.parent is not None and self in self.parent.children:
            self.parent.children.remove(self)
        self.parent = new_parent
        if new_parent is not None:
            if index is None:
                new_parent.children.append(self)
            else:
                new_parent.children.insert(index, self)

    def push_transform_to_children(self) -> None:
        """
        Compose this node's local transform into each child's, so children
        keep their pose when reparented to this node's parent.

        Exact for uniform scale only.
        """
        for child in self.children:
            child.local_position = self.local_position + self.local_rotation.rotate(
                self.local_scale.scaled(child.local_position)
            )
            child.local_rotation = self.local_rotation * child.local_rotation
            child.local_scale = self.local_scale.scaled(child.local_scale)

    def remove_keep_children(self) -> List["SceneNode"]:
        """
        Detach this node, moving its children into its parent at its position.

        Children keep their local transforms. Returns the moved children.
        """
        parent = self.parent
        moved = list(self.children)
        if parent is not None:
            index = parent.children.index(self)
            for offset, child in enumerate(moved):
                child.set_parent(parent, index + 1 + offset)
        else:
            for child in moved:
                child.set_parent(None)
        self.set_parent(None)
        for component in list(self.components):
            component.destroy()
        self.destroyed = True
        return moved

    def __repr__(self) -> str:
        return f"<SceneNode {self.path}>"
