# ============================================================================
# rigsweep/__init__.py
# Package Marker for the Trace-and-Optimize Engine
# ============================================================================
#
# PURPOSE:
# rigsweep decides which parts of a rigged character hierarchy can be deleted
# or folded without changing what the character does at runtime.
#
# LAYOUT:
# - scene/: the hierarchy snapshot (nodes, components, transforms)
# - analysis/: animation oracle and activeness queries
# - graph/: dependency graph, marker, sweep, bone-fold, mapping
# - providers/: built-in per-component edge-discovery providers
# - optimizer.py: runs the passes in order
#
# ============================================================================

__version__ = "0.3.0"
