"""End-to-end coordination: scan, build, persist, detect and cluster."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from .analysis.unused import UnusedSignalDetector
from .clustering.hierarchy import HierarchicalClusterer, HierarchicalClusters
from .config import SignalGraphConfig, load_config
from .graph.builder import SignalGraphBuilder, graph_to_facts
from .logging import get_logger
from .models import DetectorStats, ParseFailure, ScanStats, SignalGraph, UnusedSignalReport
from .project_scanner import FULL, INCREMENTAL, ProgressCallback, ProjectScanner
from .stores.cache_manager import GraphCacheManager
from .stores.graph_store import GraphStore

GRAPH_FILENAME = "signal_graph.json"
LEDGER_FILENAME = "scan_cache.json"


@dataclass
class AnalysisResult:
    """Everything produced by a single :meth:`SignalGraphPipeline.analyze` run."""

    graph: SignalGraph
    unused: List[UnusedSignalReport]
    detector_stats: DetectorStats
    scan_stats: ScanStats
    failures: List[ParseFailure] = field(default_factory=list)


class SignalGraphPipeline:
    """Runs the signal graph engine over a Godot project."""

    def __init__(
        self,
        config: SignalGraphConfig | None = None,
        *,
        builder: SignalGraphBuilder | None = None,
        store: GraphStore | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._config = config
        self.builder = builder or SignalGraphBuilder()
        self.store = store or GraphStore()
        self._progress = progress
        self._active: SignalGraphConfig | None = config
        self.logger = get_logger("pipeline")

    def analyze(self, path: str | Path, mode: str = FULL, *, min_confidence: float = 0.0) -> AnalysisResult:
        root = Path(path).expanduser().resolve()
        config = self._resolve_config(root)
        self._active = config
        graph_path = config.cache_path / GRAPH_FILENAME
        cache_manager = GraphCacheManager(config.cache_path / LEDGER_FILENAME)
        scanner = ProjectScanner(
            cache_manager=cache_manager, config=config.scanner, progress=self._progress
        )

        previous: Optional[SignalGraph] = None
        if mode == INCREMENTAL:
            previous = self.store.load(graph_path)
            if previous is None:
                self.logger.info("No usable graph cache under %s; parsing every file", config.cache_path)
                cache_manager.clear()

        self.logger.info("Analyzing %s (%s scan)", root, mode)
        forest = scanner.scan(root, mode)

        if previous is None:
            graph = self.builder.build_full_graph(forest)
        else:
            fresh = self.builder.build_full_graph(forest)
            attempted: Set[str] = {parsed.file_path for parsed in forest}
            attempted.update(failure.file_path for failure in scanner.failures)
            present = set(scanner.discovered)
            kept = [
                facts
                for facts in graph_to_facts(previous)
                if facts.file_path in present and facts.file_path not in attempted
            ]
            graph = self.builder.build_from_facts([*kept, *graph_to_facts(fresh)])
            self.logger.debug(
                "Merged %d re-parsed file(s) into %d cached file(s)", len(forest), len(kept)
            )

        # Files the extractor rejected must stay stale so the next run retries them.
        for file_path in self.builder.skipped:
            cache_manager.evict(file_path)

        self.store.save(graph, graph_path)
        cache_manager.persist()

        detector = UnusedSignalDetector(config.detector)
        unused = detector.detect_unused(graph, min_confidence=min_confidence)
        self.logger.info(
            "Graph has %d signal(s); %d flagged as unused",
            graph.metadata.signal_count,
            len(unused),
        )
        return AnalysisResult(
            graph=graph,
            unused=unused,
            detector_stats=detector.stats,
            scan_stats=scanner.stats,
            failures=list(scanner.failures),
        )

    def cluster(self, graph: SignalGraph) -> HierarchicalClusters:
        clustering = self._active.clustering if self._active is not None else None
        return HierarchicalClusterer(clustering).cluster(graph)

    def _resolve_config(self, root: Path) -> SignalGraphConfig:
        if self._config is not None:
            return self._config
        return load_config(root)


__all__ = ["AnalysisResult", "GRAPH_FILENAME", "LEDGER_FILENAME", "SignalGraphPipeline"]
