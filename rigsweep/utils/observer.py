"""Module observer: minimal signal/slot used to report pass progress."""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """
    A named pure-Python signal.

    Observers are called in subscription order. An observer that raises is
    logged and skipped so one listener cannot break an optimization run.
    """
    def __init__(self, name: str = "signal"):
        self.name = name
        self._observers: List[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]):
        """Subscribe a callback function."""
        if callback not in self._observers:
            self._observers.append(callback)

    def disconnect(self, callback: Callable[..., Any]):
        """Unsubscribe a callback function."""
        if callback in self._observers:
            self._observers.remove(callback)

    def emit(self, *args, **kwargs):
        """Notify all subscribers."""
        for callback in list(self._observers):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.warning(f"[Signal] {self.name}: observer {callback!r} failed: {e}")

    def __len__(self) -> int:
        return len(self._observers)


class Observable:
    """Base class for objects that emit signals."""
    pass
