"""Classification of signals that are declared but never fully wired."""

from __future__ import annotations

import time
from pathlib import PurePath
from typing import List, Optional, Sequence

from ..config import DetectorConfig
from ..logging import get_logger
from ..models import (
    DetectorStats,
    SignalDefinition,
    SignalEmission,
    SignalGraph,
    UnusedLocation,
    UnusedPattern,
    UnusedSignalReport,
)
from ..parsers.extractor import BUS_NAMES

_AUTOLOAD_DIR = "autoload"

_logger = get_logger("analysis.unused")


class UnusedSignalDetector:
    """Flags orphan, dead-emitter and isolated signals with a confidence score.

    Only declared signals are classified. Each check is a constant number of
    dictionary lookups per signal name, so cost grows linearly with the number
    of declarations.

    Scores are heuristics. Dynamic wiring (``connect`` by a name read from data,
    ``call``/``Callable`` built at runtime) is invisible to static extraction, so
    private names, re-declared names and global bus signals are scored lower
    rather than dropped.
    """

    def __init__(self, config: DetectorConfig | None = None) -> None:
        self.config = config or DetectorConfig()
        self.stats = DetectorStats()

    def detect_unused(self, graph: SignalGraph, min_confidence: float = 0.0) -> List[UnusedSignalReport]:
        started = time.perf_counter()
        reports: List[UnusedSignalReport] = []
        analyzed = 0

        for name, definitions in graph.definitions.items():
            if not definitions:
                continue
            analyzed += 1
            report = self._classify(
                name,
                definitions,
                graph.emissions.get(name, []),
                len(graph.connections.get(name, [])),
            )
            if report is not None and report.confidence >= min_confidence:
                reports.append(report)

        reports.sort(key=lambda item: (-item.confidence, item.signal_name))
        self.stats = _summarize(reports, analyzed, (time.perf_counter() - started) * 1000)
        _logger.debug(
            "Analyzed %d signal(s): %d orphan, %d dead emitter, %d isolated",
            analyzed,
            self.stats.orphans_found,
            self.stats.dead_emitters_found,
            self.stats.isolated_found,
        )
        return reports

    def _classify(
        self,
        name: str,
        definitions: Sequence[SignalDefinition],
        emissions: Sequence[SignalEmission],
        connection_count: int,
    ) -> Optional[UnusedSignalReport]:
        is_private = name.startswith("_")
        definition_sites = [UnusedLocation(file=item.file_path, line=item.line) for item in definitions]

        if not emissions and connection_count == 0:
            return UnusedSignalReport(
                signal_name=name,
                pattern=UnusedPattern.ISOLATED,
                confidence=1.0,
                reason="Signal is declared but never emitted or connected",
                locations=definition_sites,
                is_private=is_private,
            )

        if not emissions:
            confidence = self._reduce(self.config.orphan_base, is_private, len(definitions))
            return UnusedSignalReport(
                signal_name=name,
                pattern=UnusedPattern.ORPHAN,
                confidence=confidence,
                reason=f"Signal has {connection_count} connection(s) but is never emitted",
                locations=definition_sites,
                is_private=is_private,
            )

        if connection_count == 0:
            penalty = 0.0
            if any(_is_bus_emission(item) for item in emissions):
                penalty += self.config.bus_penalty
            if any(_is_autoload(item.file_path) for item in emissions):
                penalty += self.config.autoload_penalty
            confidence = self._reduce(
                self.config.dead_emitter_base, is_private, len(definitions), penalty
            )
            return UnusedSignalReport(
                signal_name=name,
                pattern=UnusedPattern.DEAD_EMITTER,
                confidence=confidence,
                reason=f"Signal is emitted {len(emissions)} time(s) but nothing connects to it",
                locations=[UnusedLocation(file=item.file_path, line=item.line) for item in emissions],
                is_private=is_private,
            )

        return None

    def _reduce(self, base: float, is_private: bool, definition_count: int, extra: float = 0.0) -> float:
        confidence = base - extra
        if is_private:
            confidence -= self.config.private_penalty
        if definition_count > 1:
            confidence -= self.config.inheritance_penalty
        confidence = min(1.0, max(self.config.min_confidence, confidence))
        return round(confidence, 4)


def _is_bus_emission(emission: SignalEmission) -> bool:
    if emission.emitter and emission.emitter.split(".")[0] in BUS_NAMES:
        return True
    return PurePath(emission.file_path).stem in BUS_NAMES


def _is_autoload(file_path: str) -> bool:
    return _AUTOLOAD_DIR in PurePath(file_path.replace("\\", "/")).parts[:-1]


def _summarize(reports: Sequence[UnusedSignalReport], analyzed: int, duration_ms: float) -> DetectorStats:
    stats = DetectorStats(signals_analyzed=analyzed, duration_ms=duration_ms)
    for report in reports:
        if report.pattern is UnusedPattern.ORPHAN:
            stats.orphans_found += 1
        elif report.pattern is UnusedPattern.DEAD_EMITTER:
            stats.dead_emitters_found += 1
        else:
            stats.isolated_found += 1
    stats.total_unused = len(reports)
    if reports:
        stats.avg_confidence = round(sum(item.confidence for item in reports) / len(reports), 4)
    return stats


__all__ = ["UnusedSignalDetector"]
