"""Tests for the per-file staleness ledger."""

from __future__ import annotations

import json
import os
from pathlib import Path

from signalgraph.stores import ArtifactVersionRegistry, GraphCacheManager
from signalgraph.stores.cache_manager import file_mtime_ms, normalize_mtime
from signalgraph.stores.versions import AST_FOREST


def _write(path: Path, content: str = "extends Node\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_unknown_file_is_stale(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    assert GraphCacheManager().is_stale(str(script)) is True


def test_updated_file_is_fresh_until_mtime_changes(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    cache = GraphCacheManager()
    cache.update_cache(str(script), file_mtime_ms(script))

    assert cache.is_stale(str(script)) is False

    stat_result = script.stat()
    os.utime(script, ns=(stat_result.st_atime_ns, stat_result.st_mtime_ns + 3_000_000_000))
    assert cache.is_stale(str(script)) is True


def test_last_write_wins(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    cache = GraphCacheManager()
    cache.update_cache(str(script), 1)
    cache.update_cache(str(script), file_mtime_ms(script))

    assert cache.size == 1
    assert cache.is_stale(str(script)) is False


def test_mtime_is_truncated_to_whole_milliseconds(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    cache = GraphCacheManager()
    cache.update_cache(str(script), file_mtime_ms(script) + 0.75)

    assert normalize_mtime(12.9) == 12
    assert cache.is_stale(str(script)) is False


def test_schema_version_change_marks_entries_stale(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    versions = ArtifactVersionRegistry()
    cache = GraphCacheManager(versions=versions)
    cache.update_cache(str(script), file_mtime_ms(script))

    versions.register(AST_FOREST, "4.0.0")

    assert cache.is_stale(str(script)) is True


def test_missing_file_is_stale_and_evicted(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    cache = GraphCacheManager()
    cache.update_cache(str(script), file_mtime_ms(script))
    script.unlink()

    assert cache.is_stale(str(script)) is True
    assert cache.get(str(script)) is None


def test_evict_and_clear(tmp_path: Path) -> None:
    first = _write(tmp_path / "a.gd")
    second = _write(tmp_path / "b.gd")
    cache = GraphCacheManager()
    cache.update_cache(str(first), 1)
    cache.update_cache(str(second), 2)

    cache.evict(str(first))
    assert cache.cached_files() == [os.path.abspath(second)]

    cache.clear()
    assert cache.size == 0


def test_ledger_round_trips_through_disk(tmp_path: Path) -> None:
    script = _write(tmp_path / "player.gd")
    ledger = tmp_path / ".signalgraph" / "scan_cache.json"
    cache = GraphCacheManager(ledger)
    cache.update_cache(str(script), file_mtime_ms(script))
    cache.persist()

    reloaded = GraphCacheManager(ledger)

    assert reloaded.size == 1
    assert reloaded.is_stale(str(script)) is False


def test_corrupt_ledger_is_ignored(tmp_path: Path) -> None:
    ledger = tmp_path / "scan_cache.json"
    ledger.write_text("{not json", encoding="utf-8")
    assert GraphCacheManager(ledger).size == 0

    ledger.write_text(json.dumps({"version": 99, "entries": {}}), encoding="utf-8")
    assert GraphCacheManager(ledger).size == 0
