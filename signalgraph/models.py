"""Core data models shared across signalgraph components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


@dataclass
class SignalDefinition:
    """Declaration site of a signal (``signal name(params)``)."""

    name: str
    params: List[str]
    file_path: str
    line: int
    source: str
    param_types: Dict[str, str] = field(default_factory=dict)
    context: str = ""


@dataclass
class SignalEmission:
    """Call site that fires a signal."""

    signal_name: str
    file_path: str
    line: int
    emitter: Optional[str] = None
    args: List[str] = field(default_factory=list)
    context: str = ""


@dataclass
class SignalConnection:
    """Call site that subscribes a handler to a signal."""

    signal_name: str
    file_path: str
    line: int
    handler: str
    target: Optional[str] = None
    flags: List[str] = field(default_factory=list)
    is_lambda: bool = False
    context: str = ""


@dataclass
class FileFacts:
    """Everything the extractor found in a single file."""

    file_path: str
    definitions: List[SignalDefinition] = field(default_factory=list)
    emissions: List[SignalEmission] = field(default_factory=list)
    connections: List[SignalConnection] = field(default_factory=list)


@dataclass
class GraphMetadata:
    """Counts and versioning attached to a built graph."""

    schema_version: str
    timestamp: int
    file_count: int
    signal_count: int
    emission_count: int
    connection_count: int


@dataclass
class SignalGraph:
    """Project-wide signal graph keyed by signal name."""

    definitions: Dict[str, List[SignalDefinition]]
    emissions: Dict[str, List[SignalEmission]]
    connections: Dict[str, List[SignalConnection]]
    metadata: GraphMetadata
    files: List[str] = field(default_factory=list)


@dataclass
class ParsedFile:
    """A parsed syntax tree together with the file facts the scanner recorded."""

    tree: Any
    file_path: str
    size_bytes: int
    parse_duration_ms: float
    mtime: int
    source: bytes = b""


@dataclass
class ParseFailure:
    """Structured record of a file that could not be parsed."""

    file_path: str
    error: str


@dataclass
class ScanStats:
    """Counters describing the most recent scan."""

    files_discovered: int = 0
    files_parsed: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    worker_count: int = 0
    duration_ms: float = 0.0


@dataclass
class ScanEvent:
    """Lifecycle notification emitted by the scanner for observability."""

    kind: str
    root: str
    mode: str
    files_processed: int = 0
    total_files: int = 0
    error: Optional[str] = None
    stats: Optional[ScanStats] = None


class UnusedPattern(str, Enum):
    """Ways a signal can be unused."""

    ORPHAN = "orphan"
    DEAD_EMITTER = "dead_emitter"
    ISOLATED = "isolated"


@dataclass
class UnusedLocation:
    file: str
    line: int


@dataclass
class UnusedSignalReport:
    """Classification of a signal the detector believes is unused."""

    signal_name: str
    pattern: UnusedPattern
    confidence: float
    reason: str
    locations: List[UnusedLocation] = field(default_factory=list)
    is_private: bool = False


@dataclass
class DetectorStats:
    signals_analyzed: int = 0
    orphans_found: int = 0
    dead_emitters_found: int = 0
    isolated_found: int = 0
    total_unused: int = 0
    duration_ms: float = 0.0
    avg_confidence: float = 0.0


@dataclass
class GraphNode:
    id: str
    label: Optional[str] = None


@dataclass
class GraphLink:
    source: str
    target: str


@dataclass
class ClusterResult:
    """Partition of a node set produced by community detection."""

    clusters: Dict[int, Set[str]]
    node_to_cluster: Dict[str, int]
    modularity: float


@dataclass
class CacheEntry:
    """Staleness ledger entry for one source file."""

    file_path: str
    mtime: int
    schema_version: str
