"""Tests for signalgraph.parsers.extractor against the real GDScript grammar."""

from __future__ import annotations

from signalgraph.parsers import LAMBDA_HANDLER, SignalExtractor


def test_definitions_capture_params_and_types(extract) -> None:
    facts = extract(
        """
        extends Node

        signal health_changed(new_health: int, old_health)
        signal died
        """,
        file_path="actors/player.gd",
    )

    by_name = {item.name: item for item in facts.definitions}
    assert set(by_name) == {"health_changed", "died"}

    health = by_name["health_changed"]
    assert health.params == ["new_health", "old_health"]
    assert health.param_types == {"new_health": "int"}
    assert health.line == 3
    assert health.source == "player"
    assert health.file_path == "actors/player.gd"
    assert health.context.startswith("signal health_changed")

    assert by_name["died"].params == []


def test_emissions_cover_local_bus_and_legacy_forms(extract) -> None:
    facts = extract(
        """
        extends Node

        signal health_changed(value)
        signal died

        func take_damage(amount):
        	health_changed.emit(amount)
        	EventBus.player_hit.emit()
        	emit_signal("died")
        """
    )

    by_name = {item.signal_name: item for item in facts.emissions}
    assert set(by_name) == {"health_changed", "player_hit", "died"}

    assert by_name["health_changed"].emitter is None
    assert by_name["health_changed"].args == ["amount"]
    assert by_name["health_changed"].line == 7
    assert by_name["player_hit"].emitter == "EventBus"
    assert by_name["player_hit"].args == []
    assert by_name["died"].args == []


def test_connection_forms_normalise_to_one_shape(extract) -> None:
    facts = extract(
        """
        extends Node

        func _ready():
        	health_changed.connect(_on_health_changed)
        	EventBus.player_hit.connect(Callable(self, "_on_player_hit"))
        	died.connect(func(): queue_free())
        	$Button.pressed.connect(_on_pressed.bind(3), CONNECT_ONE_SHOT)
        """
    )

    by_name = {item.signal_name: item for item in facts.connections}
    assert set(by_name) == {"health_changed", "player_hit", "died", "pressed"}

    direct = by_name["health_changed"]
    assert direct.handler == "_on_health_changed"
    assert direct.is_lambda is False
    assert direct.target is None

    wrapped = by_name["player_hit"]
    assert wrapped.handler == "_on_player_hit"
    assert wrapped.is_lambda is False
    assert wrapped.target == "EventBus"

    closure = by_name["died"]
    assert closure.handler == LAMBDA_HANDLER
    assert closure.is_lambda is True

    bound = by_name["pressed"]
    assert bound.handler == "_on_pressed"
    assert bound.target == "$Button"
    assert bound.flags == ["CONNECT_ONE_SHOT"]


def test_legacy_connect_takes_names_from_strings(extract) -> None:
    facts = extract(
        """
        extends Node

        func _ready():
        	timer.connect("timeout", self, "_on_timeout")
        """
    )

    assert len(facts.connections) == 1
    connection = facts.connections[0]
    assert connection.signal_name == "timeout"
    assert connection.handler == "_on_timeout"
    assert connection.target == "timer"
    assert connection.is_lambda is False


def test_unrelated_calls_are_ignored(extract) -> None:
    facts = extract(
        """
        extends Node

        func _ready():
        	print("connect")
        	add_child(Node.new())
        	get_tree().create_timer(1.0)
        """
    )

    assert facts.emissions == []
    assert facts.connections == []


def test_stats_separate_bus_and_local_signals(gd_parser) -> None:
    extractor = SignalExtractor()
    bus_source = b"extends Node\n\nsignal player_hit\nsignal level_won\n"
    local_source = b"extends Node\n\nsignal died\n"
    extractor.extract(gd_parser.parse_bytes(bus_source), "autoload/EventBus.gd", bus_source)
    extractor.extract(gd_parser.parse_bytes(local_source), "player.gd", local_source)

    assert extractor.stats.files_processed == 2
    assert extractor.stats.definitions == 3
    assert extractor.stats.bus_signals == 2
    assert extractor.stats.local_signals == 1

    extractor.reset_stats()
    assert extractor.stats.files_processed == 0
