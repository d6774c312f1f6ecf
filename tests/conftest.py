from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from signalgraph.parsers import GDScriptParser, SignalExtractor
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture(scope="session")
def gd_parser() -> GDScriptParser:
    parser = GDScriptParser()
    parser.init()
    return parser


@pytest.fixture
def extract(gd_parser: GDScriptParser):
    """Parse a GDScript snippet and return its file facts."""
    extractor = SignalExtractor()

    def _extract(text: str, file_path: str = "res/player.gd"):
        source = textwrap.dedent(text).lstrip("\n").encode("utf-8")
        tree = gd_parser.parse_bytes(source, label=file_path)
        return extractor.extract(tree, file_path, source)

    return _extract
