"""JSON persistence for built signal graphs."""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..logging import get_logger
from ..models import (
    GraphMetadata,
    SignalConnection,
    SignalDefinition,
    SignalEmission,
    SignalGraph,
)
from .versions import SIGNAL_GRAPH, ArtifactVersionRegistry

GRAPH_SCHEMA_VERSION = "3.0.0"

_logger = get_logger("stores.graph_store")

T = TypeVar("T")


class GraphStore:
    """Saves and reloads :class:`SignalGraph` objects.

    Anything unexpected in a cache file (missing keys, wrong types, invalid JSON
    or another schema version) is treated as a cache miss. The file is left in
    place and overwritten by the next successful save.
    """

    def __init__(self, versions: ArtifactVersionRegistry | None = None) -> None:
        self._versions = versions or ArtifactVersionRegistry()
        if not self._versions.has(SIGNAL_GRAPH):
            self._versions.register(SIGNAL_GRAPH, GRAPH_SCHEMA_VERSION)

    @property
    def schema_version(self) -> str:
        return self._versions.get(SIGNAL_GRAPH)

    def save(self, graph: SignalGraph, path: Path) -> None:
        started = time.perf_counter()
        payload = {
            "version": self.schema_version,
            "metadata": asdict(graph.metadata),
            "files": list(graph.files),
            "definitions": _dump_section(graph.definitions),
            "emissions": _dump_section(graph.emissions),
            "connections": _dump_section(graph.connections),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        _logger.debug(
            "Saved signal graph to %s in %.1fms", path, (time.perf_counter() - started) * 1000
        )

    def load(self, path: Path) -> Optional[SignalGraph]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            _logger.warning("Ignoring unreadable graph cache %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            _logger.warning("Ignoring graph cache %s: root is not an object", path)
            return None

        version = data.get("version")
        if version != self.schema_version:
            _logger.warning(
                "Graph cache version mismatch (expected %s, found %s); ignoring %s",
                self.schema_version,
                version,
                path,
            )
            return None

        try:
            metadata = _load_metadata(data.get("metadata"))
            definitions = _load_section(data.get("definitions"), _definition_from_dict)
            emissions = _load_section(data.get("emissions"), _emission_from_dict)
            connections = _load_section(data.get("connections"), _connection_from_dict)
        except (TypeError, ValueError) as exc:
            _logger.warning("Ignoring malformed graph cache %s: %s", path, exc)
            return None

        if metadata.schema_version != self.schema_version:
            _logger.warning("Graph cache %s carries schema %s; ignoring", path, metadata.schema_version)
            return None

        files = data.get("files")
        return SignalGraph(
            definitions=definitions,
            emissions=emissions,
            connections=connections,
            metadata=metadata,
            files=[item for item in files if isinstance(item, str)] if isinstance(files, list) else [],
        )

    def is_stale(self, path: Path, latest_source_mtime_ms: int) -> bool:
        graph = self.load(path)
        if graph is None:
            return True
        return graph.metadata.timestamp < latest_source_mtime_ms

    def stats(self, path: Path) -> Optional[Dict[str, int]]:
        try:
            stat_result = path.stat()
        except OSError:
            return None
        return {"size_bytes": stat_result.st_size, "mtime": stat_result.st_mtime_ns // 1_000_000}


def _dump_section(section: Dict[str, List[Any]]) -> Dict[str, List[Dict[str, Any]]]:
    return {name: [asdict(fact) for fact in facts] for name, facts in section.items()}


def _load_section(raw: object, factory: Callable[[Dict[str, Any]], T]) -> Dict[str, List[T]]:
    if not isinstance(raw, dict):
        raise ValueError("graph section must be an object")
    section: Dict[str, List[T]] = {}
    for name, items in raw.items():
        if not isinstance(name, str) or not isinstance(items, list):
            raise ValueError(f"invalid entry for signal {name!r}")
        facts = []
        for item in items:
            if not isinstance(item, dict):
                raise ValueError(f"invalid fact for signal {name!r}")
            facts.append(factory(item))
        section[name] = facts
    return section


def _load_metadata(raw: object) -> GraphMetadata:
    if not isinstance(raw, dict):
        raise ValueError("metadata must be an object")
    schema_version = raw.get("schema_version")
    if not isinstance(schema_version, str):
        raise ValueError("metadata.schema_version must be a string")
    counts = {}
    for key in ("timestamp", "file_count", "signal_count", "emission_count", "connection_count"):
        value = raw.get(key)
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"metadata.{key} must be an integer")
        counts[key] = value
    return GraphMetadata(schema_version=schema_version, **counts)


def _require_str(item: Dict[str, Any], key: str) -> str:
    value = item.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _require_line(item: Dict[str, Any]) -> int:
    value = item.get("line")
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValueError("line must be a positive integer")
    return value


def _str_list(value: object) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("expected a list of strings")
    return [str(item) for item in value]


def _optional_str(value: object) -> Optional[str]:
    return value if isinstance(value, str) else None


def _definition_from_dict(item: Dict[str, Any]) -> SignalDefinition:
    param_types = item.get("param_types") or {}
    if not isinstance(param_types, dict):
        raise ValueError("param_types must be an object")
    return SignalDefinition(
        name=_require_str(item, "name"),
        params=_str_list(item.get("params")),
        file_path=_require_str(item, "file_path"),
        line=_require_line(item),
        source=_require_str(item, "source"),
        param_types={str(key): str(value) for key, value in param_types.items()},
        context=str(item.get("context") or ""),
    )


def _emission_from_dict(item: Dict[str, Any]) -> SignalEmission:
    return SignalEmission(
        signal_name=_require_str(item, "signal_name"),
        file_path=_require_str(item, "file_path"),
        line=_require_line(item),
        emitter=_optional_str(item.get("emitter")),
        args=_str_list(item.get("args")),
        context=str(item.get("context") or ""),
    )


def _connection_from_dict(item: Dict[str, Any]) -> SignalConnection:
    return SignalConnection(
        signal_name=_require_str(item, "signal_name"),
        file_path=_require_str(item, "file_path"),
        line=_require_line(item),
        handler=_require_str(item, "handler"),
        target=_optional_str(item.get("target")),
        flags=_str_list(item.get("flags")),
        is_lambda=bool(item.get("is_lambda", False)),
        context=str(item.get("context") or ""),
    )


__all__ = ["GRAPH_SCHEMA_VERSION", "GraphStore"]
