"""Tests for the unused signal detector."""

from __future__ import annotations

from typing import Iterable

from signalgraph.analysis import UnusedSignalDetector
from signalgraph.config import DetectorConfig
from signalgraph.graph import SignalGraphBuilder
from signalgraph.models import (
    FileFacts,
    SignalConnection,
    SignalDefinition,
    SignalEmission,
    SignalGraph,
    UnusedPattern,
)


def _graph(
    defined: Iterable[tuple[str, str]],
    emitted: Iterable[tuple[str, str]] = (),
    connected: Iterable[str] = (),
    emitter: str | None = None,
) -> SignalGraph:
    facts = FileFacts(file_path="all.gd")
    for name, file_path in defined:
        facts.definitions.append(
            SignalDefinition(name=name, params=[], file_path=file_path, line=1, source="all")
        )
    for name, file_path in emitted:
        facts.emissions.append(
            SignalEmission(signal_name=name, file_path=file_path, line=2, emitter=emitter)
        )
    for name in connected:
        facts.connections.append(
            SignalConnection(signal_name=name, file_path="hud.gd", line=3, handler=f"_on_{name}")
        )
    return SignalGraphBuilder().build_from_facts([facts])


def _single(graph: SignalGraph):
    reports = UnusedSignalDetector().detect_unused(graph)
    assert len(reports) == 1
    return reports[0]


def test_connected_but_never_emitted_is_orphan(project_builder) -> None:
    project_builder.write(
        {
            "player.gd": """
                extends Node

                signal health_changed(new_health)
                """,
            "hud.gd": """
                extends Control

                func _ready():
                	player.health_changed.connect(_on_health_changed)

                func _on_health_changed(value):
                	pass
                """,
        }
    )

    reports = UnusedSignalDetector().detect_unused(project_builder.graph())

    assert len(reports) == 1
    assert reports[0].signal_name == "health_changed"
    assert reports[0].pattern is UnusedPattern.ORPHAN
    assert reports[0].confidence >= 0.95


def test_emitted_but_never_connected_is_dead_emitter(project_builder) -> None:
    project_builder.write(
        {
            "logger.gd": """
                extends Node

                signal debug_log(message)

                func log_line(text):
                	debug_log.emit(text)
                """,
        }
    )

    reports = UnusedSignalDetector().detect_unused(project_builder.graph())

    assert len(reports) == 1
    assert reports[0].pattern is UnusedPattern.DEAD_EMITTER
    assert reports[0].confidence >= 0.90
    assert reports[0].locations[0].line == 6


def test_isolated_signal_is_certain() -> None:
    report = _single(_graph([("unused", "a.gd")]))
    assert report.pattern is UnusedPattern.ISOLATED
    assert report.confidence == 1.0


def test_fully_wired_and_undefined_signals_are_not_reported() -> None:
    graph = _graph(
        [("wired", "a.gd")],
        emitted=[("wired", "a.gd"), ("ghost", "a.gd")],
        connected=["wired", "phantom"],
    )
    assert UnusedSignalDetector().detect_unused(graph) == []


def test_classification_matches_activity_counts() -> None:
    graph = _graph(
        [("iso", "a.gd"), ("orphan", "a.gd"), ("dead", "a.gd"), ("live", "a.gd")],
        emitted=[("dead", "a.gd"), ("live", "a.gd")],
        connected=["orphan", "live"],
    )
    detector = UnusedSignalDetector()

    patterns = {report.signal_name: report.pattern for report in detector.detect_unused(graph)}

    assert patterns == {
        "iso": UnusedPattern.ISOLATED,
        "orphan": UnusedPattern.ORPHAN,
        "dead": UnusedPattern.DEAD_EMITTER,
    }
    assert detector.stats.signals_analyzed == 4
    assert detector.stats.total_unused == 3
    assert detector.stats.orphans_found == 1
    assert detector.stats.dead_emitters_found == 1
    assert detector.stats.isolated_found == 1


def test_private_and_redeclared_orphans_score_lower() -> None:
    public = _single(_graph([("hit", "a.gd")], connected=["hit"]))
    private = _single(_graph([("_hit", "a.gd")], connected=["_hit"]))
    redeclared = _single(_graph([("hit", "a.gd"), ("hit", "b.gd")], connected=["hit"]))

    assert private.is_private is True
    assert private.confidence < public.confidence
    assert redeclared.confidence < public.confidence
    assert 0.0 < redeclared.confidence < 1.0


def test_bus_and_autoload_dead_emitters_score_lower() -> None:
    local = _single(_graph([("hit", "a.gd")], emitted=[("hit", "player.gd")]))
    bus = _single(_graph([("hit", "a.gd")], emitted=[("hit", "player.gd")], emitter="EventBus"))
    autoload = _single(_graph([("hit", "a.gd")], emitted=[("hit", "autoload/game.gd")]))

    assert bus.confidence < local.confidence
    assert autoload.confidence < local.confidence


def test_penalties_never_reach_zero() -> None:
    config = DetectorConfig(private_penalty=0.9, inheritance_penalty=0.9, min_confidence=0.05)
    graph = _graph([("_hit", "a.gd"), ("_hit", "b.gd")], connected=["_hit"])

    reports = UnusedSignalDetector(config).detect_unused(graph)

    assert reports[0].confidence == 0.05


def test_reports_sorted_and_filtered_by_confidence() -> None:
    graph = _graph(
        [("iso", "a.gd"), ("_orphan", "a.gd"), ("dead", "a.gd")],
        emitted=[("dead", "a.gd")],
        connected=["_orphan"],
    )
    detector = UnusedSignalDetector()

    reports = detector.detect_unused(graph)
    confident = detector.detect_unused(graph, min_confidence=0.85)

    assert [report.signal_name for report in reports] == ["iso", "dead", "_orphan"]
    assert [report.signal_name for report in confident] == ["iso", "dead"]


def test_several_hundred_signals_are_analyzed_quickly() -> None:
    files = [
        FileFacts(
            file_path=f"scripts/unit_{index // 10:02d}.gd",
            definitions=[
                SignalDefinition(
                    name=f"event_{index:03d}",
                    params=[],
                    file_path=f"scripts/unit_{index // 10:02d}.gd",
                    line=1 + index % 10,
                    source="unit",
                )
            ],
            emissions=[
                SignalEmission(
                    signal_name=f"event_{index:03d}", file_path=f"scripts/unit_{index // 10:02d}.gd", line=20
                )
            ]
            if index % 3
            else [],
            connections=[
                SignalConnection(
                    signal_name=f"event_{index:03d}",
                    file_path="ui/hud.gd",
                    line=index + 1,
                    handler=f"_on_event_{index:03d}",
                )
            ]
            if index % 2
            else [],
        )
        for index in range(500)
    ]
    graph = SignalGraphBuilder().build_from_facts(files)
    detector = UnusedSignalDetector()

    reports = detector.detect_unused(graph)

    assert detector.stats.signals_analyzed == 500
    assert detector.stats.isolated_found == 84
    assert detector.stats.orphans_found == 83
    assert detector.stats.dead_emitters_found == 166
    assert len(reports) == 333
    assert detector.stats.duration_ms < 1000
