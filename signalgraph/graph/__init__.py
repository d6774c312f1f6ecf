"""Signal graph construction and queries."""

from .builder import (
    BuilderStats,
    SignalGraphBuilder,
    all_signal_names,
    find_undefined_signals,
    find_unemitted_signals,
    graph_to_facts,
)

__all__ = [
    "BuilderStats",
    "SignalGraphBuilder",
    "all_signal_names",
    "find_undefined_signals",
    "find_unemitted_signals",
    "graph_to_facts",
]
