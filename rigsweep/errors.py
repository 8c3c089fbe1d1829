"""Module errors: structured error taxonomy for rigsweep."""
#
# PURPOSE:
# Provides a structured error taxonomy with error codes, typed exceptions,
# and consistent handling across the optimization pipeline.
#
# ERROR CODE FORMAT:
# - CONFIG_XXX: Provider registration / configuration errors
# - GRAPH_XXX: Dependency graph consistency errors
# - ASSET_XXX: Referenced resources that cannot be read
# - SINK_XXX: Misuse of the edge-discovery sink by a provider
# - SYSTEM_XXX: Anything else
#
# PROPAGATION POLICY:
# None of these abort a whole run. The collector and optimizer catch them,
# downgrade to conservative behaviour (retain, don't delete) and record them
# in the BuildReport.
#
# USAGE:
#   from rigsweep.errors import FatalAssetError, ErrorCode
#
#   raise FatalAssetError(
#       "Mesh asset cannot be read",
#       details={"mesh": "Body.mesh"}
#   )
#
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(Enum):
    # Config Errors
    CONFIG_DUPLICATE_PROVIDER = "CONFIG_001"
    CONFIG_MISSING_PROVIDER = "CONFIG_002"
    CONFIG_INVALID_PROVIDER = "CONFIG_003"
    CONFIG_INVALID = "CONFIG_004"

    # Graph Errors
    GRAPH_DANGLING_EDGE = "GRAPH_001"
    GRAPH_INVALID_PATH = "GRAPH_002"
    GRAPH_PROVIDER_FAILED = "GRAPH_003"

    # Asset Errors
    ASSET_UNREADABLE = "ASSET_001"

    # Sink Errors
    SINK_CLOSED = "SINK_001"

    # System Errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


class RigSweepError(Exception):
    """
    Base exception class for rigsweep with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "CONFIG_001")
        message: Human-readable error message
        details: Optional dictionary with additional context
    """

    default_code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}

        # Build exception message with code for easy debugging
        super().__init__(f"[{self.code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for reporting."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(RigSweepError):
    """Duplicate or missing provider registration."""
    default_code = ErrorCode.CONFIG_INVALID


class GraphConsistencyError(RigSweepError):
    """An edge references a component that is not (or no longer) in the graph."""
    default_code = ErrorCode.GRAPH_DANGLING_EDGE


class FatalAssetError(RigSweepError):
    """
    A resource referenced by a component cannot be read.

    Raised by providers. Aborts optimization for the owning node's subtree only.
    """
    default_code = ErrorCode.ASSET_UNREADABLE


class SinkClosedError(RigSweepError):
    """A sink or configuration handle was used after its provider call returned."""
    default_code = ErrorCode.SINK_CLOSED


# ============================================================================
# Convenience Functions
# ============================================================================

def handle_error(error: Exception, context: Optional[str] = None) -> RigSweepError:
    """
    Convert a generic exception to a RigSweepError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while collecting Animator")

    Returns:
        RigSweepError with appropriate code and message
    """
    if isinstance(error, RigSweepError):
        return error

    error_type = type(error).__name__
    message = str(error)
    if context:
        message = f"{context}: {message}"

    return RigSweepError(
        message,
        code=ErrorCode.GRAPH_PROVIDER_FAILED,
        details={
            "original_type": error_type,
            "original_message": str(error),
        },
    )


__all__ = [
    "ErrorCode",
    "RigSweepError",
    "ConfigurationError",
    "GraphConsistencyError",
    "FatalAssetError",
    "SinkClosedError",
    "handle_error",
]
