"""
Animation modifications container.

Records which properties of which objects are changed at runtime, either by
animation clips (with their possible values) or by other components (values
unknown). It answers the two oracle queries the edge-discovery protocol
exposes and the property lookups Bone-Fold needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional, Protocol, Set, Tuple

logger = logging.getLogger(__name__)


class AnimationOracle(Protocol):
    """Pure queries answered by the animation-analysis collaborator."""

    def get_animated_flag(self, target: Any, property_name: str, current_value: bool) -> Optional[bool]:
        """True/False when the flag is constant at runtime, None when it is mixed."""
        ...

    def is_parameter_used(self, name: str) -> bool:
        ...


@dataclass(frozen=True)
class PropertyState:
    """
    What is known about one animated property.

    values: every value an animation may write
    always_applied: the initial value is never observable at runtime
    unknown: driven by something whose values cannot be enumerated
    """
    values: FrozenSet[Any] = frozenset()
    always_applied: bool = False
    unknown: bool = False

    def merge(self, other: "PropertyState") -> "PropertyState":
        return PropertyState(
            values=self.values | other.values,
            always_applied=self.always_applied and other.always_applied,
            unknown=self.unknown or other.unknown,
        )

    def possible_values(self, current_value: Any) -> Optional[Set[Any]]:
        """None when the set cannot be enumerated."""
        if self.unknown:
            return None
        possible = set(self.values)
        if not self.always_applied:
            possible.add(current_value)
        return possible


class AnimationModifications:
    """
    Mutable container filled before a run, read-only during it.

    Keys are the animated objects themselves (nodes or components), compared
    by identity.
    """

    def __init__(self):
        self._properties: Dict[Any, Dict[str, PropertyState]] = {}
        self._used_parameters: Set[str] = set()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self,
               target: Any,
               property_name: str,
               values: Iterable[Any],
               always_applied: bool = False) -> None:
        """Record an animation that writes `values` into `target.property_name`."""
        self._merge(target, property_name, PropertyState(frozenset(values), always_applied))

    def record_mutation(self, target: Any, properties: Iterable[str]) -> None:
        """Record properties changed at runtime by another component."""
        properties = tuple(properties)
        logger.debug(f"[Modifications] {target!r}: {len(properties)} properties mutated at runtime")
        for property_name in properties:
            self._merge(target, property_name, PropertyState(unknown=True))

    def mark_parameter_used(self, name: str) -> None:
        self._used_parameters.add(name)

    def _merge(self, target: Any, property_name: str, state: PropertyState) -> None:
        per_target = self._properties.setdefault(target, {})
        existing = per_target.get(property_name)
        per_target[property_name] = state if existing is None else existing.merge(state)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_modified_properties(self, target: Any) -> Dict[str, PropertyState]:
        return dict(self._properties.get(target, {}))

    def is_animated(self, target: Any, properties: Iterable[str]) -> bool:
        modified = self._properties.get(target)
        if not modified:
            return False
        return any(name in modified for name in properties)

    def get_animated_flag(self, target: Any, property_name: str, current_value: bool) -> Optional[bool]:
        state = self._properties.get(target, {}).get(property_name)
        if state is None:
            return current_value

        possible = state.possible_values(current_value)
        if possible is None:
            return None

        flags = {bool(value) for value in possible}
        if len(flags) == 1:
            return flags.pop()
        return None

    def get_constant_value(self, target: Any, property_name: str, current_value: Any) -> Tuple[bool, Any]:
        """
        (True, value) when the property holds one value for the whole run,
        (False, None) otherwise.
        """
        state = self._properties.get(target, {}).get(property_name)
        if state is None:
            return True, current_value

        possible = state.possible_values(current_value)
        if possible is None or len(possible) != 1:
            return False, None
        return True, next(iter(possible))

    def is_parameter_used(self, name: str) -> bool:
        return name in self._used_parameters

    def __len__(self) -> int:
        return sum(len(props) for props in self._properties.values())
