"""Community detection and cluster labelling for the signal graph."""

from .community import detect_communities, modularity
from .hierarchy import HierarchicalClusterer, HierarchicalClusters, LabeledCluster, build_signal_links
from .labels import TfidfLabeler

__all__ = [
    "HierarchicalClusterer",
    "HierarchicalClusters",
    "LabeledCluster",
    "TfidfLabeler",
    "build_signal_links",
    "detect_communities",
    "modularity",
]
