"""
GC debug output.

Exports the dependency graph to networkx for inspection and reports the
dependency cycles it contains. Only used when `gc_debug` is enabled; none of
this affects what gets removed.
"""

import logging
from enum import Flag
from typing import Any, Dict, List, Optional

import networkx as nx

from .marker import MarkResult
from .models import GraphStore

logger = logging.getLogger(__name__)


def _flag_names(flag: Flag) -> List[str]:
    return [member.name for member in type(flag) if member.value and member in flag]


def to_networkx(store: GraphStore, marks: Optional[MarkResult] = None) -> nx.DiGraph:
    """
    One graph node per live record (keyed by index), one graph edge per
    dependant -> dependency bundle.
    """
    graph = nx.DiGraph()
    for record in store.records():
        graph.add_node(
            record.index,
            label=record.component.display_name,
            classification=_flag_names(record.classification),
            provider=record.provider_name,
            fallback=record.fallback,
            marked=marks.is_marked(record.index) if marks is not None else None,
        )

    for record in store.records():
        for bundle in store.outgoing(record.index):
            graph.add_edge(
                record.index,
                bundle.dependency,
                variants=[
                    {"conditions": _flag_names(c), "kinds": _flag_names(k)}
                    for c, k in bundle.variants.items()
                ],
            )
    return graph


def find_dependency_cycles(store: GraphStore, limit: int = 10) -> List[List[str]]:
    """Strongly connected components with more than one member (or a self-loop)."""
    graph = to_networkx(store)
    cycles: List[List[str]] = []
    for component in nx.strongly_connected_components(graph):
        if len(cycles) >= limit:
            break
        if len(component) == 1:
            (index,) = component
            if not graph.has_edge(index, index):
                continue
        cycles.append(sorted(graph.nodes[i]["label"] for i in component))
    return cycles


def summarize(store: GraphStore, marks: Optional[MarkResult] = None, max_cycles: int = 10) -> Dict[str, Any]:
    graph = to_networkx(store, marks)
    summary: Dict[str, Any] = {
        "components": graph.number_of_nodes(),
        "edges": graph.number_of_edges(),
        "fallback": sum(1 for _, data in graph.nodes(data=True) if data["fallback"]),
        "cycles": find_dependency_cycles(store, max_cycles),
    }
    if marks is not None:
        summary["marked"] = sum(1 for _, data in graph.nodes(data=True) if data["marked"])
        summary["unmarked"] = summary["components"] - summary["marked"]
        summary["seeds"] = len(marks.seeds)
    return summary


def log_debug_summary(store: GraphStore, marks: Optional[MarkResult] = None, max_cycles: int = 10) -> Dict[str, Any]:
    summary = summarize(store, marks, max_cycles)
    logger.info(
        f"[GCDebug] {summary['components']} components, {summary['edges']} edges, "
        f"{summary['fallback']} fallback, {len(summary['cycles'])} cycles"
    )
    for cycle in summary["cycles"]:
        logger.info(f"[GCDebug] Cycle: {' -> '.join(cycle)}")
    if marks is not None:
        for component in marks.unmarked_components():
            logger.debug(f"[GCDebug] Unmarked: {component.display_name}")
    return summary
