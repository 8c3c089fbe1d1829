"""
Built-in edge-discovery providers for the component catalogue in
rigsweep.scene.components.
"""

from .builtin import BUILTIN_PROVIDERS, default_registry

__all__ = [
    'BUILTIN_PROVIDERS',
    'default_registry',
]
