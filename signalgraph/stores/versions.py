"""Schema version registry for persisted artifacts."""

from __future__ import annotations

import re
from typing import Dict

DEFAULT_VERSION = "1.0.0"
AST_FOREST = "ast_forest"
SIGNAL_GRAPH = "signal_graph"

_SEMVER_RE = re.compile(r"\d+\.\d+\.\d+")


class ArtifactVersionRegistry:
    """Maps artifact types to the schema version currently produced."""

    def __init__(self) -> None:
        self._versions: Dict[str, str] = {}

    def register(self, artifact_type: str, version: str) -> None:
        if not artifact_type or not artifact_type.strip():
            raise ValueError("Artifact type cannot be empty")
        if not _SEMVER_RE.fullmatch(version):
            raise ValueError(
                f"Invalid version format: {version!r}. Expected semantic version like '1.0.0'"
            )
        self._versions[artifact_type] = version

    def get(self, artifact_type: str) -> str:
        return self._versions.get(artifact_type, DEFAULT_VERSION)

    def has(self, artifact_type: str) -> bool:
        return artifact_type in self._versions

    def all(self) -> Dict[str, str]:
        return dict(self._versions)


__all__ = ["AST_FOREST", "ArtifactVersionRegistry", "DEFAULT_VERSION", "SIGNAL_GRAPH"]
