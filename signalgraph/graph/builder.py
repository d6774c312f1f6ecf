"""Fold per-file extraction results into one project-wide signal graph."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, TypeVar

from ..logging import get_logger
from ..models import (
    FileFacts,
    GraphMetadata,
    ParsedFile,
    SignalConnection,
    SignalDefinition,
    SignalEmission,
    SignalGraph,
)
from ..parsers.extractor import SignalExtractor
from ..stores.graph_store import GRAPH_SCHEMA_VERSION

_logger = get_logger("graph.builder")

T = TypeVar("T")


@dataclass
class BuilderStats:
    files_processed: int = 0
    signals_discovered: int = 0
    emissions_found: int = 0
    connections_found: int = 0
    duration_ms: float = 0.0


class SignalGraphBuilder:
    """Builds a :class:`SignalGraph` from a forest of parsed files."""

    def __init__(
        self,
        extractor: SignalExtractor | None = None,
        schema_version: str = GRAPH_SCHEMA_VERSION,
    ) -> None:
        self.extractor = extractor or SignalExtractor()
        self.schema_version = schema_version
        self.stats = BuilderStats()
        self.skipped: List[str] = []

    def build_full_graph(self, forest: Iterable[ParsedFile]) -> SignalGraph:
        """Extract every file in ``forest`` and merge the results."""
        started = time.perf_counter()
        collected: List[FileFacts] = []
        self.skipped = []
        for parsed in forest:
            try:
                facts = self.extractor.extract(
                    parsed.tree, parsed.file_path, parsed.source or None
                )
            except Exception as exc:
                _logger.warning("Failed to extract signals from %s: %s", parsed.file_path, exc)
                self.skipped.append(parsed.file_path)
                continue
            collected.append(facts)
        graph = self.build_from_facts(collected)
        self.stats.duration_ms = (time.perf_counter() - started) * 1000
        _logger.debug(
            "Built signal graph from %d file(s) in %.1fms",
            self.stats.files_processed,
            self.stats.duration_ms,
        )
        return graph

    def build_from_facts(
        self, facts: Iterable[FileFacts], timestamp: Optional[int] = None
    ) -> SignalGraph:
        definitions: Dict[str, List[SignalDefinition]] = {}
        emissions: Dict[str, List[SignalEmission]] = {}
        connections: Dict[str, List[SignalConnection]] = {}
        files: List[str] = []

        for file_facts in facts:
            files.append(file_facts.file_path)
            for definition in file_facts.definitions:
                definitions.setdefault(definition.name, []).append(definition)
            for emission in file_facts.emissions:
                emissions.setdefault(emission.signal_name, []).append(emission)
            for connection in file_facts.connections:
                connections.setdefault(connection.signal_name, []).append(connection)

        names = set(definitions) | set(emissions) | set(connections)
        metadata = GraphMetadata(
            schema_version=self.schema_version,
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
            file_count=len(files),
            signal_count=len(names),
            emission_count=_fact_count(emissions),
            connection_count=_fact_count(connections),
        )
        self.stats = BuilderStats(
            files_processed=len(files),
            signals_discovered=len(names),
            emissions_found=metadata.emission_count,
            connections_found=metadata.connection_count,
        )
        return SignalGraph(
            definitions=definitions,
            emissions=emissions,
            connections=connections,
            metadata=metadata,
            files=sorted(files),
        )


def graph_to_facts(graph: SignalGraph) -> List[FileFacts]:
    """Split ``graph`` back into per-file facts, one entry per recorded file."""
    by_file: Dict[str, FileFacts] = {path: FileFacts(file_path=path) for path in graph.files}

    def bucket(path: str) -> FileFacts:
        if path not in by_file:
            by_file[path] = FileFacts(file_path=path)
        return by_file[path]

    for items in graph.definitions.values():
        for definition in items:
            bucket(definition.file_path).definitions.append(definition)
    for items in graph.emissions.values():
        for emission in items:
            bucket(emission.file_path).emissions.append(emission)
    for items in graph.connections.values():
        for connection in items:
            bucket(connection.file_path).connections.append(connection)
    return [by_file[path] for path in sorted(by_file)]


def all_signal_names(graph: SignalGraph) -> List[str]:
    return sorted(set(graph.definitions) | set(graph.emissions) | set(graph.connections))


def find_undefined_signals(graph: SignalGraph) -> List[str]:
    """Signals that are emitted or connected somewhere but never declared."""
    used: Set[str] = set(graph.emissions) | set(graph.connections)
    return sorted(name for name in used if not graph.definitions.get(name))


def find_unemitted_signals(graph: SignalGraph) -> List[str]:
    return sorted(name for name in graph.definitions if not graph.emissions.get(name))


def _fact_count(section: Dict[str, Sequence[T]]) -> int:
    return sum(len(items) for items in section.values())


__all__ = [
    "BuilderStats",
    "SignalGraphBuilder",
    "all_signal_names",
    "find_undefined_signals",
    "find_unemitted_signals",
    "graph_to_facts",
]
