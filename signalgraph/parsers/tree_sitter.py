"""Tree-sitter backed GDScript syntax tree provider."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from tree_sitter import Parser, Tree
from tree_sitter_language_pack import get_parser

from ..logging import get_logger

LANGUAGE_NAME = "gdscript"

_logger = get_logger("parsers.tree_sitter")


class ParserInitError(RuntimeError):
    """Raised when the GDScript grammar cannot be loaded."""


class ParseError(RuntimeError):
    """Raised when a single source file cannot be turned into a syntax tree."""


class GDScriptParser:
    """Parses GDScript sources into tree-sitter trees.

    A parser instance is not thread-safe; the scanner creates one per worker.
    """

    def __init__(self) -> None:
        self._parser: Optional[Parser] = None
        self.init_duration_ms: float = 0.0

    @property
    def initialized(self) -> bool:
        return self._parser is not None

    def init(self) -> None:
        """Load the GDScript grammar. Calling it again is a no-op."""
        if self._parser is not None:
            return
        started = time.perf_counter()
        try:
            self._parser = get_parser(LANGUAGE_NAME)
        except Exception as exc:
            raise ParserInitError(f"Failed to load the {LANGUAGE_NAME} grammar: {exc}") from exc
        self.init_duration_ms = (time.perf_counter() - started) * 1000
        _logger.debug("Loaded %s grammar in %.1fms", LANGUAGE_NAME, self.init_duration_ms)

    def read_source(self, path: Path | str) -> bytes:
        """Return the raw bytes of ``path`` after checking they are UTF-8 text."""
        file_path = Path(path)
        try:
            data = file_path.read_bytes()
        except OSError as exc:
            raise ParseError(f"Cannot read {file_path}: {exc}") from exc
        if b"\x00" in data:
            raise ParseError(f"{file_path} contains NUL bytes; not a text source file")
        try:
            data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"{file_path} is not valid UTF-8: {exc}") from exc
        return data

    def parse_bytes(self, source: bytes, *, label: str = "<string>") -> Tree:
        if self._parser is None:
            raise ParseError("GDScriptParser not initialized; call init() first")
        tree = self._parser.parse(source)
        if tree.root_node.has_error:
            _logger.warning("Syntax errors in %s; extracting from recoverable nodes", label)
        return tree

    def parse_string(self, text: str) -> Tree:
        return self.parse_bytes(text.encode("utf-8"))

    def parse_file(self, path: Path | str) -> Tree:
        return self.parse_bytes(self.read_source(path), label=str(path))


__all__ = ["GDScriptParser", "LANGUAGE_NAME", "ParseError", "ParserInitError"]
