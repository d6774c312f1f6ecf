"""Per-file staleness ledger used by incremental scans."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..logging import get_logger
from ..models import CacheEntry
from .versions import AST_FOREST, ArtifactVersionRegistry

CACHE_SCHEMA_VERSION = "3.0.0"
_LEDGER_VERSION = 1

_logger = get_logger("stores.cache_manager")


def normalize_mtime(mtime: float | int) -> int:
    """Truncate a millisecond timestamp to an integer."""
    return int(mtime)


def file_mtime_ms(path: Path | str) -> int:
    """Return the modification time of ``path`` in whole milliseconds."""
    return os.stat(path).st_mtime_ns // 1_000_000


class GraphCacheManager:
    """Tracks which source files changed since they were last parsed.

    Entries are keyed by absolute path. Writes for the same key simply replace
    the previous entry, so the last update wins.
    """

    def __init__(
        self,
        path: Path | None = None,
        versions: ArtifactVersionRegistry | None = None,
    ) -> None:
        self._path = path
        self._versions = versions or ArtifactVersionRegistry()
        if not self._versions.has(AST_FOREST):
            self._versions.register(AST_FOREST, CACHE_SCHEMA_VERSION)
        self._entries: Dict[str, CacheEntry] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    @property
    def schema_version(self) -> str:
        return self._versions.get(AST_FOREST)

    @property
    def size(self) -> int:
        return len(self._entries)

    def get(self, file_path: str) -> Optional[CacheEntry]:
        return self._entries.get(_key(file_path))

    def is_stale(self, file_path: str) -> bool:
        """Return True when ``file_path`` must be parsed again."""
        key = _key(file_path)
        entry = self._entries.get(key)
        if entry is None:
            return True
        if entry.schema_version != self.schema_version:
            return True
        try:
            current = file_mtime_ms(key)
        except FileNotFoundError:
            self.evict(key)
            return True
        except OSError as exc:
            _logger.warning("Failed to stat %s: %s", key, exc)
            return True
        return current != entry.mtime

    def update_cache(self, file_path: str, mtime: float | int) -> None:
        key = _key(file_path)
        self._entries[key] = CacheEntry(
            file_path=key,
            mtime=normalize_mtime(mtime),
            schema_version=self.schema_version,
        )
        self._dirty = True

    def evict(self, file_path: str) -> None:
        if self._entries.pop(_key(file_path), None) is not None:
            self._dirty = True

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    def cached_files(self) -> List[str]:
        return list(self._entries)

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _LEDGER_VERSION,
            "entries": {
                key: {"mtime": entry.mtime, "schema_version": entry.schema_version}
                for key, entry in self._entries.items()
            },
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, ValueError) as exc:
            _logger.warning("Ignoring unreadable scan cache %s: %s", path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _LEDGER_VERSION:
            _logger.debug("Ignoring scan cache %s with unexpected layout", path)
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid: Dict[str, CacheEntry] = {}
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            mtime = raw.get("mtime")
            schema_version = raw.get("schema_version")
            if isinstance(mtime, int) and not isinstance(mtime, bool) and isinstance(schema_version, str):
                valid[key] = CacheEntry(file_path=key, mtime=mtime, schema_version=schema_version)
        self._entries = valid
        self._dirty = False


def _key(file_path: str) -> str:
    return os.path.abspath(file_path)


__all__ = ["CACHE_SCHEMA_VERSION", "GraphCacheManager", "file_mtime_ms", "normalize_mtime"]
