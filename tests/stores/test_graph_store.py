"""Tests for graph persistence."""

from __future__ import annotations

import json
from pathlib import Path

from signalgraph.graph import SignalGraphBuilder
from signalgraph.models import (
    FileFacts,
    SignalConnection,
    SignalDefinition,
    SignalEmission,
    SignalGraph,
)
from signalgraph.stores import ArtifactVersionRegistry, GraphStore
from signalgraph.stores.versions import SIGNAL_GRAPH


def _sample_graph() -> SignalGraph:
    player = FileFacts(
        file_path="/game/player.gd",
        definitions=[
            SignalDefinition(
                name="health_changed",
                params=["value"],
                file_path="/game/player.gd",
                line=3,
                source="player",
                param_types={"value": "int"},
            )
        ],
        emissions=[SignalEmission(signal_name="health_changed", file_path="/game/player.gd", line=9, args=["value"])],
    )
    hud = FileFacts(
        file_path="/game/hud.gd",
        connections=[
            SignalConnection(
                signal_name="health_changed",
                file_path="/game/hud.gd",
                line=4,
                handler="_on_health_changed",
                target="player",
                flags=["CONNECT_DEFERRED"],
            ),
            SignalConnection(
                signal_name="died",
                file_path="/game/hud.gd",
                line=5,
                handler="<lambda>",
                is_lambda=True,
            ),
        ],
    )
    return SignalGraphBuilder().build_from_facts([player, hud], timestamp=1_000)


def test_round_trip_preserves_counts_and_facts(tmp_path: Path) -> None:
    graph = _sample_graph()
    path = tmp_path / ".signalgraph" / "signal_graph.json"
    store = GraphStore()

    store.save(graph, path)
    loaded = store.load(path)

    assert loaded is not None
    assert loaded.metadata == graph.metadata
    assert len(loaded.definitions) == len(graph.definitions)
    assert len(loaded.emissions) == len(graph.emissions)
    assert len(loaded.connections) == len(graph.connections)
    assert loaded.definitions["health_changed"][0] == graph.definitions["health_changed"][0]
    assert loaded.connections["died"][0].is_lambda is True
    assert loaded.files == graph.files


def test_missing_file_is_a_miss(tmp_path: Path) -> None:
    assert GraphStore().load(tmp_path / "absent.json") is None


def test_corrupt_file_is_a_miss_and_left_in_place(tmp_path: Path) -> None:
    path = tmp_path / "signal_graph.json"
    path.write_text("{\"version\": ", encoding="utf-8")

    assert GraphStore().load(path) is None
    assert path.exists()


def test_malformed_sections_are_a_miss(tmp_path: Path) -> None:
    store = GraphStore()
    path = tmp_path / "signal_graph.json"
    store.save(_sample_graph(), path)
    payload = json.loads(path.read_text(encoding="utf-8"))
    payload["emissions"]["health_changed"][0]["line"] = "nine"
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert store.load(path) is None


def test_schema_version_change_invalidates_cache(tmp_path: Path) -> None:
    path = tmp_path / "signal_graph.json"
    GraphStore().save(_sample_graph(), path)

    versions = ArtifactVersionRegistry()
    versions.register(SIGNAL_GRAPH, "9.0.0")
    newer = GraphStore(versions)

    assert newer.load(path) is None
    assert path.exists()

    newer.save(SignalGraphBuilder(schema_version="9.0.0").build_from_facts([]), path)
    assert newer.load(path) is not None


def test_is_stale_compares_build_timestamp(tmp_path: Path) -> None:
    path = tmp_path / "signal_graph.json"
    store = GraphStore()
    store.save(_sample_graph(), path)

    assert store.is_stale(path, 500) is False
    assert store.is_stale(path, 5_000) is True
    assert store.is_stale(tmp_path / "absent.json", 0) is True


def test_stats_reports_size(tmp_path: Path) -> None:
    path = tmp_path / "signal_graph.json"
    store = GraphStore()
    assert store.stats(path) is None

    store.save(_sample_graph(), path)
    stats = store.stats(path)

    assert stats is not None
    assert stats["size_bytes"] == path.stat().st_size
