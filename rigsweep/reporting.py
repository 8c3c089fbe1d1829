"""
Build report: warnings and errors raised during one optimization run.

Every entry carries a stable code and the objects it is about, so callers can
surface "which component, which node" without parsing messages.
"""

import logging
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from .errors import RigSweepError
from .scene.models import Component, SceneNode

logger = logging.getLogger(__name__)


class ReportSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ReportEntry(BaseModel):
    severity: ReportSeverity
    code: str
    message: str
    context: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)


def describe(obj: Any) -> str:
    """Human-readable location of a scene object."""
    if isinstance(obj, Component):
        return obj.display_name
    if isinstance(obj, SceneNode):
        return obj.path
    return str(obj)


class BuildReport:
    """Collects entries for one run and mirrors each one to the logger."""

    def __init__(self):
        self.entries: List[ReportEntry] = []

    def info(self, code: str, message: str, *context: Any) -> ReportEntry:
        return self._add(ReportSeverity.INFO, code, message, context)

    def warning(self, code: str, message: str, *context: Any) -> ReportEntry:
        return self._add(ReportSeverity.WARNING, code, message, context)

    def error(self, code: str, message: str, *context: Any) -> ReportEntry:
        return self._add(ReportSeverity.ERROR, code, message, context)

    def record_error(self,
                     error: RigSweepError,
                     *context: Any,
                     severity: ReportSeverity = ReportSeverity.WARNING) -> ReportEntry:
        return self._add(severity, error.code.value, error.message, context, error.details)

    def _add(self, severity, code, message, context, details=None) -> ReportEntry:
        entry = ReportEntry(
            severity=severity,
            code=code,
            message=message,
            context=[describe(obj) for obj in context],
            details=dict(details or {}),
        )
        self.entries.append(entry)

        where = f" ({', '.join(entry.context)})" if entry.context else ""
        if severity is ReportSeverity.ERROR:
            logger.error(f"[Report] {code}: {message}{where}")
        elif severity is ReportSeverity.WARNING:
            logger.warning(f"[Report] {code}: {message}{where}")
        else:
            logger.info(f"[Report] {code}: {message}{where}")
        return entry

    @property
    def has_errors(self) -> bool:
        return any(e.severity is ReportSeverity.ERROR for e in self.entries)

    def entries_for(self, code: str) -> List[ReportEntry]:
        return [e for e in self.entries if e.code == code]

    def to_dict(self) -> Dict[str, Any]:
        return {"entries": [e.model_dump(mode="json") for e in self.entries]}

    def __len__(self) -> int:
        return len(self.entries)
