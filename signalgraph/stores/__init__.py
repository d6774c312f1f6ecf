"""Persistent stores: scan ledger, graph cache and schema versions."""

from .cache_manager import GraphCacheManager
from .graph_store import GraphStore
from .versions import ArtifactVersionRegistry

__all__ = ["ArtifactVersionRegistry", "GraphCacheManager", "GraphStore"]
