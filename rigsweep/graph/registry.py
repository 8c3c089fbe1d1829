"""
Provider registry.

Built once before a run and passed to the collector. Providers are indexed
by the exact component type they describe; a second provider for the same
type is a configuration error, detected here at registration time. The type
is then treated as unregistered (conservative fallback) instead of picking a
winner.
"""

import logging
from typing import Dict, Iterable, List, Optional, Type, Union

from ..errors import ConfigurationError, ErrorCode
from ..scene.models import Component
from .protocol import ComponentInformation

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Type-indexed map of ComponentInformation providers."""

    def __init__(self, providers: Iterable[Union[ComponentInformation, type]] = ()):
        self._providers: Dict[type, ComponentInformation] = {}
        self._conflicts: Dict[type, List[str]] = {}
        self.errors: List[ConfigurationError] = []
        for provider in providers:
            self.register(provider)

    def register(self, provider: Union[ComponentInformation, type]) -> Optional[ComponentInformation]:
        """
        Register a provider instance or class.

        Returns the registered instance, or None if the provider was rejected.
        Problems are recorded in `errors`, never raised.
        """
        if isinstance(provider, type):
            provider = provider()

        if not isinstance(provider, ComponentInformation):
            self._error(
                ErrorCode.CONFIG_INVALID_PROVIDER,
                f"{type(provider).__name__} is not a ComponentInformation",
                {"provider": type(provider).__name__},
            )
            return None

        targets = provider.target_types
        if not targets or not all(isinstance(t, type) and issubclass(t, Component) for t in targets):
            self._error(
                ErrorCode.CONFIG_INVALID_PROVIDER,
                f"{provider.name} declares no valid component target types",
                {"provider": provider.name},
            )
            return None

        for target in targets:
            if target in self._conflicts:
                self._conflicts[target].append(provider.name)
                continue

            existing = self._providers.get(target)
            if existing is None:
                self._providers[target] = provider
                continue

            # Duplicate: drop both, the type falls back to the conservative path
            del self._providers[target]
            self._conflicts[target] = [existing.name, provider.name]
            self._error(
                ErrorCode.CONFIG_DUPLICATE_PROVIDER,
                f"Multiple providers for {target.__name__}: {existing.name}, {provider.name}",
                {"type": target.__name__, "providers": [existing.name, provider.name]},
            )

        return provider

    def _error(self, code: ErrorCode, message: str, details: dict) -> None:
        error = ConfigurationError(message, code=code, details=details)
        self.errors.append(error)
        logger.warning(f"[Registry] {error}")

    def resolve(self, component_type: Type[Component]) -> Optional[ComponentInformation]:
        """The single provider for exactly this type, or None."""
        return self._providers.get(component_type)

    def lookup_error(self, component_type: Type[Component]) -> ConfigurationError:
        """Why `component_type` has no usable provider."""
        conflicting = self._conflicts.get(component_type)
        if conflicting:
            return ConfigurationError(
                f"Multiple providers for {component_type.__name__}: {', '.join(conflicting)}",
                code=ErrorCode.CONFIG_DUPLICATE_PROVIDER,
                details={"type": component_type.__name__, "providers": list(conflicting)},
            )
        return ConfigurationError(
            f"No provider registered for {component_type.__name__}",
            code=ErrorCode.CONFIG_MISSING_PROVIDER,
            details={"type": component_type.__name__},
        )

    @property
    def registered_types(self) -> List[type]:
        return list(self._providers)

    def __contains__(self, component_type: type) -> bool:
        return component_type in self._providers

    def __len__(self) -> int:
        return len(self._providers)
