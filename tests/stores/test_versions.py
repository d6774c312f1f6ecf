"""Tests for the artifact schema version registry."""

from __future__ import annotations

import pytest

from signalgraph.stores import ArtifactVersionRegistry
from signalgraph.stores.versions import DEFAULT_VERSION


def test_unregistered_types_use_default_version() -> None:
    registry = ArtifactVersionRegistry()
    assert registry.get("ast_forest") == DEFAULT_VERSION
    assert registry.has("ast_forest") is False


def test_register_overwrites_previous_version() -> None:
    registry = ArtifactVersionRegistry()
    registry.register("signal_graph", "1.0.0")
    registry.register("signal_graph", "2.1.0")

    assert registry.get("signal_graph") == "2.1.0"
    assert registry.all() == {"signal_graph": "2.1.0"}


@pytest.mark.parametrize("artifact_type,version", [("", "1.0.0"), ("graph", "1.0"), ("graph", "v1.0.0")])
def test_register_rejects_invalid_input(artifact_type: str, version: str) -> None:
    with pytest.raises(ValueError):
        ArtifactVersionRegistry().register(artifact_type, version)
