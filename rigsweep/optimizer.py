"""
Trace-and-optimize pipeline.

Runs the passes in order over one hierarchy:

    collect -> mark -> sweep -> bone-fold -> special mapping

Every pass start and end is announced through signals so tooling can show
progress. Nothing raised inside a pass escapes run(): failures end up in the
BuildReport and the result is flagged.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from .analysis.activeness import ActivenessCache
from .analysis.modifications import AnimationModifications, AnimationOracle
from .base.config import RigSweepConfig, get_config
from .errors import handle_error
from .graph.bone_fold import BoneFolder
from .graph.collector import CollectionStats, DependencyCollector
from .graph.debug import log_debug_summary
from .graph.mapping import ObjectMapping
from .graph.marker import MarkResult, ReachabilityMarker
from .graph.registry import ProviderRegistry
from .graph.sweep import Sweeper
from .providers import default_registry
from .reporting import BuildReport, ReportSeverity
from .scene.models import Component, SceneNode
from .utils.observer import Observable, Signal

logger = logging.getLogger(__name__)


@dataclass
class OptimizationResult:
    report: BuildReport
    mapping: ObjectMapping
    removed_components: List[Component] = field(default_factory=list)
    removed_nodes: List[SceneNode] = field(default_factory=list)
    folded_nodes: List[SceneNode] = field(default_factory=list)
    enablement_schedule: Dict[Component, List[Component]] = field(default_factory=dict)
    stats: Optional[CollectionStats] = None
    marks: Optional[MarkResult] = None
    debug_summary: Optional[Dict[str, Any]] = None
    pass_timings: Dict[str, float] = field(default_factory=dict)
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "removed_components": [c.display_name for c in self.removed_components],
            "removed_nodes": [n.name for n in self.removed_nodes],
            "folded_nodes": [n.name for n in self.folded_nodes],
            "enablement_schedule": {
                c.display_name: [d.display_name for d in drivers]
                for c, drivers in self.enablement_schedule.items()
            },
            "stats": vars(self.stats) if self.stats is not None else None,
            "pass_timings": dict(self.pass_timings),
            "failed": self.failed,
            "report": self.report.to_dict(),
        }


class TraceOptimizer(Observable):
    """
    One optimization run over `root`.

    Args:
        root: Root of the hierarchy; never removed or folded
        registry: Providers to use (built-ins when omitted)
        oracle: Animation oracle. When it is an AnimationModifications
            container it also receives provider mutations and drives Bone-Fold.
        config: Run settings (global config when omitted)
        exclusions: Nodes whose subtrees are kept untouched
    """

    def __init__(self,
                 root: SceneNode,
                 registry: Optional[ProviderRegistry] = None,
                 oracle: Optional[AnimationOracle] = None,
                 config: Optional[RigSweepConfig] = None,
                 exclusions: Iterable[SceneNode] = ()):
        super().__init__()
        self.root = root
        self.registry = registry if registry is not None else default_registry()
        self.oracle = oracle if oracle is not None else AnimationModifications()
        self.config = config or get_config()
        self.exclusions = list(exclusions)

        self.modifications = self.oracle if isinstance(self.oracle, AnimationModifications) else None
        self.report = BuildReport()
        self.mapping = ObjectMapping()

        # pass name; pass name, seconds
        self.pass_started = Signal("pass_started")
        self.pass_completed = Signal("pass_completed")

    def run(self) -> OptimizationResult:
        result = OptimizationResult(report=self.report, mapping=self.mapping)
        gc = self.config.gc

        for error in self.registry.errors:
            self.report.record_error(error)

        if not gc.remove_unused_objects:
            logger.info("[Optimizer] Unused object removal disabled; hierarchy left untouched")
            return result

        try:
            self._run(result)
        except Exception as e:
            error = handle_error(e, "optimization run")
            self.report.record_error(error, self.root, severity=ReportSeverity.ERROR)
            result.failed = True
            logger.exception(f"[Optimizer] Run aborted for {self.root.path}")

        logger.info(
            f"[Optimizer] {self.root.path}: removed {len(result.removed_components)} components, "
            f"{len(result.removed_nodes)} nodes, folded {len(result.folded_nodes)} nodes"
        )
        return result

    def _run(self, result: OptimizationResult) -> None:
        gc = self.config.gc

        collector = DependencyCollector(
            self.root,
            self.registry,
            self.oracle,
            report=self.report,
            mutations=self.modifications,
            preserve_end_bone=gc.preserve_end_bone,
        )
        store = self._run_pass("collect", collector.collect_all, result)
        result.stats = collector.stats

        pinned = collector.pinned_nodes()
        for node in self.exclusions:
            pinned.update(node.iter_descendants())

        marker = ReachabilityMarker(
            store,
            ActivenessCache(self.oracle),
            root=self.root,
            exclusions=self.exclusions,
            pinned=collector.aborted_roots,
        )
        marks = self._run_pass("mark", marker.mark, result)
        result.marks = marks
        result.enablement_schedule = marks.enablement_schedule()

        if gc.gc_debug:
            result.debug_summary = log_debug_summary(store, marks, gc.max_reported_cycles)

        sweeper = Sweeper(
            self.root, store, marks,
            pinned=pinned, mapping=self.mapping, oracle=self.oracle,
        )
        swept = self._run_pass("sweep", sweeper.run, result)
        result.removed_components = swept.removed_components
        result.removed_nodes = swept.removed_nodes

        if gc.configure_bone_fold:
            if self.modifications is None:
                self.report.warning(
                    "BONE_FOLD_SKIPPED",
                    "Bone-Fold needs an AnimationModifications container as oracle",
                    self.root,
                )
            else:
                folder = BoneFolder(
                    self.root, store, marks, self.modifications,
                    pinned=pinned, mapping=self.mapping,
                )
                folded = self._run_pass("bone_fold", folder.run, result)
                result.folded_nodes = folded.folded_nodes

        self._run_pass("special_mapping", self._apply_special_mapping, result)

    def _run_pass(self, name: str, func: Callable[[], Any], result: OptimizationResult) -> Any:
        self.pass_started.emit(name)
        started = time.perf_counter()
        value = func()
        elapsed = time.perf_counter() - started
        result.pass_timings[name] = elapsed
        logger.debug(f"[Optimizer] Pass {name} took {elapsed * 1000:.1f}ms")
        self.pass_completed.emit(name, elapsed)
        return value

    def _apply_special_mapping(self) -> None:
        for node in list(self.root.iter_descendants()):
            for component in list(node.components):
                provider = self.registry.resolve(type(component))
                if provider is None:
                    continue
                try:
                    provider.apply_special_mapping(component, self.mapping)
                except Exception as e:
                    error = handle_error(e, f"{provider.name}.apply_special_mapping")
                    self.report.record_error(error, component)
