"""
Scene snapshot: nodes, pivots and the built-in component catalogue.
"""

from .models import (
    Component,
    Quaternion,
    SceneNode,
    Transform,
    Vector3,
    PROP_ACTIVE,
    PROP_ENABLED,
    TRANSFORM_PROPERTIES,
)

__all__ = [
    'Component',
    'Quaternion',
    'SceneNode',
    'Transform',
    'Vector3',
    'PROP_ACTIVE',
    'PROP_ENABLED',
    'TRANSFORM_PROPERTIES',
]
