"""GDScript parsing: syntax tree provider and signal fact extraction."""

from .extractor import LAMBDA_HANDLER, ExtractionStats, SignalExtractor
from .tree_sitter import GDScriptParser, ParseError, ParserInitError

__all__ = [
    "ExtractionStats",
    "GDScriptParser",
    "LAMBDA_HANDLER",
    "ParseError",
    "ParserInitError",
    "SignalExtractor",
]
