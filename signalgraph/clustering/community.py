"""Greedy modularity community detection over an undirected graph."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Set, Tuple, Union

from ..logging import get_logger
from ..models import ClusterResult, GraphLink, GraphNode

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_MIN_GAIN = 1e-6

NodeLike = Union[GraphNode, str]
EdgeLike = Union[GraphLink, Tuple[str, str]]

_logger = get_logger("clustering.community")


def detect_communities(
    nodes: Iterable[NodeLike],
    edges: Iterable[EdgeLike],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    min_gain: float = DEFAULT_MIN_GAIN,
) -> ClusterResult:
    """Partition ``nodes`` by repeatedly moving each node to its best neighbouring cluster.

    Duplicate edges count once. Self-loops and edges touching unknown nodes are
    ignored. Cluster ids in the result are dense and ordered by the first node
    of each cluster.
    """
    order = _node_ids(nodes)
    if not order:
        return ClusterResult(clusters={}, node_to_cluster={}, modularity=0.0)

    adjacency: Dict[str, Set[str]] = {node: set() for node in order}
    unique_edges: Set[FrozenSet[str]] = set()
    for source, target in _edge_pairs(edges):
        if source == target or source not in adjacency or target not in adjacency:
            continue
        unique_edges.add(frozenset((source, target)))
        adjacency[source].add(target)
        adjacency[target].add(source)

    m = len(unique_edges)
    degree = {node: len(adjacency[node]) for node in order}
    assignment = {node: index for index, node in enumerate(order)}
    cluster_degree = {index: degree[node] for index, node in enumerate(order)}

    if m == 0:
        return _finalize(order, assignment, adjacency, 0)

    two_m = 2.0 * m
    iterations = 0
    while iterations < max_iterations:
        iterations += 1
        moved = 0
        for node in order:
            current = assignment[node]
            k = degree[node]
            links: Dict[int, int] = {}
            for neighbour in adjacency[node]:
                cluster = assignment[neighbour]
                links[cluster] = links.get(cluster, 0) + 1
            inside = links.get(current, 0)

            best_cluster = current
            best_gain = min_gain
            for cluster in sorted(links):
                if cluster == current:
                    continue
                gain = (links[cluster] - inside) / two_m - k * (
                    cluster_degree[cluster] - cluster_degree[current] + k
                ) / (two_m * two_m)
                if gain > best_gain:
                    best_gain = gain
                    best_cluster = cluster

            if best_cluster != current:
                cluster_degree[current] -= k
                cluster_degree[best_cluster] += k
                assignment[node] = best_cluster
                moved += 1
        if moved == 0:
            break

    _logger.debug("Community detection converged after %d iteration(s)", iterations)
    return _finalize(order, assignment, adjacency, m)


def modularity(
    clusters: Dict[int, Set[str]], adjacency: Dict[str, Set[str]], edge_count: int
) -> float:
    """Return ``sum(e_c / m - (deg_c / 2m) ** 2)`` over every cluster."""
    if edge_count == 0:
        return 0.0
    total = 0.0
    for members in clusters.values():
        internal = sum(len(adjacency[node] & members) for node in members) / 2
        degree_sum = sum(len(adjacency[node]) for node in members)
        total += internal / edge_count - (degree_sum / (2.0 * edge_count)) ** 2
    return total


def _finalize(
    order: List[str],
    assignment: Dict[str, int],
    adjacency: Dict[str, Set[str]],
    edge_count: int,
) -> ClusterResult:
    renumbered: Dict[int, int] = {}
    clusters: Dict[int, Set[str]] = {}
    node_to_cluster: Dict[str, int] = {}
    for node in order:
        raw = assignment[node]
        if raw not in renumbered:
            renumbered[raw] = len(renumbered)
        cluster_id = renumbered[raw]
        clusters.setdefault(cluster_id, set()).add(node)
        node_to_cluster[node] = cluster_id
    return ClusterResult(
        clusters=clusters,
        node_to_cluster=node_to_cluster,
        modularity=modularity(clusters, adjacency, edge_count),
    )


def _node_ids(nodes: Iterable[NodeLike]) -> List[str]:
    seen: Dict[str, None] = {}
    for node in nodes:
        node_id = node.id if isinstance(node, GraphNode) else str(node)
        seen.setdefault(node_id, None)
    return list(seen)


def _edge_pairs(edges: Iterable[EdgeLike]) -> Iterable[Tuple[str, str]]:
    for edge in edges:
        if isinstance(edge, GraphLink):
            yield edge.source, edge.target
        else:
            source, target = edge
            yield str(source), str(target)


__all__ = ["DEFAULT_MAX_ITERATIONS", "DEFAULT_MIN_GAIN", "detect_communities", "modularity"]
