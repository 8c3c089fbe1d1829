"""
Animation analysis collaborators: the modifications container (oracle) and
activeness queries built on top of it.
"""

from .modifications import AnimationModifications, AnimationOracle, PropertyState
from .activeness import ActivenessCache

__all__ = [
    'AnimationModifications',
    'AnimationOracle',
    'PropertyState',
    'ActivenessCache',
]
