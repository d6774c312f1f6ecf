"""Two-level clustering of the signal graph with TF-IDF labels."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..config import ClusteringConfig
from ..logging import get_logger
from ..models import GraphLink, GraphNode, SignalGraph
from .community import detect_communities
from .labels import TfidfLabeler

_logger = get_logger("clustering.hierarchy")


@dataclass
class LabeledCluster:
    id: int
    label: str
    signals: Set[str]
    top_terms: List[Tuple[str, float]] = field(default_factory=list)


@dataclass
class SubClusterResult:
    parent_id: int
    clusters: Dict[int, Set[str]]
    modularity: float


@dataclass
class HierarchicalClusters:
    clusters: Dict[int, LabeledCluster]
    modularity: float
    sub_clusters: Dict[int, SubClusterResult] = field(default_factory=dict)
    depth: int = 2
    total_signals: int = 0
    timestamp: int = 0


@dataclass
class ClusteringStats:
    duration_ms: float = 0.0
    top_level_clusters: int = 0
    sub_clusters_total: int = 0
    avg_cluster_size: float = 0.0
    max_cluster_size: int = 0
    min_cluster_size: int = 0
    modularity: float = 0.0


def build_signal_links(graph: SignalGraph) -> Tuple[List[GraphNode], List[GraphLink]]:
    """Project ``graph`` onto declared signals linked by shared emitters and handlers.

    Two signals are linked when they are emitted from the same file or when
    they are connected to the same ``(target, handler)`` pair. Lambda handlers
    are never shared, so they do not produce links.
    """
    nodes = [GraphNode(id=name) for name in sorted(graph.definitions)]

    by_file: Dict[str, Set[str]] = {}
    for name, emissions in graph.emissions.items():
        for emission in emissions:
            by_file.setdefault(emission.file_path, set()).add(name)

    by_handler: Dict[Tuple[Optional[str], str], Set[str]] = {}
    for name, connections in graph.connections.items():
        for connection in connections:
            if connection.is_lambda:
                continue
            by_handler.setdefault((connection.target, connection.handler), set()).add(name)

    pairs: Set[Tuple[str, str]] = set()
    for group in [*by_file.values(), *by_handler.values()]:
        for source, target in combinations(sorted(group), 2):
            pairs.add((source, target))

    return nodes, [GraphLink(source=source, target=target) for source, target in sorted(pairs)]


def induced_links(members: Iterable[str], links: Iterable[GraphLink]) -> List[GraphLink]:
    member_set = set(members)
    return [link for link in links if link.source in member_set and link.target in member_set]


class HierarchicalClusterer:
    """Groups signals into labelled communities, splitting large ones a second time."""

    def __init__(self, config: ClusteringConfig | None = None) -> None:
        self.config = config or ClusteringConfig()
        self.labeler = TfidfLabeler()
        self.stats = ClusteringStats()

    def cluster(self, graph: SignalGraph) -> HierarchicalClusters:
        started = time.perf_counter()
        names = sorted(graph.definitions)
        self.labeler.build_corpus(names)

        nodes, links = build_signal_links(graph)
        _logger.debug("Clustering %d signal(s) with %d link(s)", len(nodes), len(links))
        top = detect_communities(
            nodes,
            links,
            max_iterations=self.config.max_iterations,
            min_gain=self.config.min_gain,
        )

        labeled: Dict[int, LabeledCluster] = {}
        for cluster_id, members in top.clusters.items():
            label, scores = self.labeler.label_with_scores(sorted(members))
            labeled[cluster_id] = LabeledCluster(
                id=cluster_id,
                label=label,
                signals=set(members),
                top_terms=[(item.term, item.tfidf) for item in scores],
            )

        sub_clusters: Dict[int, SubClusterResult] = {}
        if self.config.depth > 1:
            for parent_id, members in top.clusters.items():
                if len(members) < self.config.min_subcluster_size:
                    continue
                ordered = sorted(members)
                sub = detect_communities(
                    ordered,
                    induced_links(ordered, links),
                    max_iterations=self.config.max_iterations,
                    min_gain=self.config.min_gain,
                )
                if len(sub.clusters) > 1:
                    sub_clusters[parent_id] = SubClusterResult(
                        parent_id=parent_id, clusters=sub.clusters, modularity=sub.modularity
                    )

        sizes = [len(members) for members in top.clusters.values()]
        self.stats = ClusteringStats(
            duration_ms=(time.perf_counter() - started) * 1000,
            top_level_clusters=len(top.clusters),
            sub_clusters_total=sum(len(item.clusters) for item in sub_clusters.values()),
            avg_cluster_size=sum(sizes) / len(sizes) if sizes else 0.0,
            max_cluster_size=max(sizes, default=0),
            min_cluster_size=min(sizes, default=0),
            modularity=top.modularity,
        )
        _logger.debug(
            "Clustered into %d top-level and %d sub-cluster(s), modularity %.4f",
            self.stats.top_level_clusters,
            self.stats.sub_clusters_total,
            top.modularity,
        )
        return HierarchicalClusters(
            clusters=labeled,
            modularity=top.modularity,
            sub_clusters=sub_clusters,
            depth=self.config.depth,
            total_signals=len(names),
            timestamp=int(time.time() * 1000),
        )


__all__ = [
    "ClusteringStats",
    "HierarchicalClusterer",
    "HierarchicalClusters",
    "LabeledCluster",
    "SubClusterResult",
    "build_signal_links",
    "induced_links",
]
