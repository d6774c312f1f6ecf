"""Extract signal definitions, emissions and connections from GDScript syntax trees.

Extraction looks at one file at a time and never consults other files. Call
sites are recognised from the callee text that precedes an ``arguments`` node,
which keeps the extractor independent of how the grammar nests attribute
access and calls:

* ``signal health_changed(value: int)`` is a definition.
* ``health_changed.emit(1)``, ``EventBus.health_changed.emit(1)`` and the
  Godot 3 ``emit_signal("health_changed", 1)`` are emissions.
* ``health_changed.connect(_on_health_changed)``,
  ``health_changed.connect(Callable(self, "_on_health_changed"))``,
  ``health_changed.connect(func(v): print(v))`` and the Godot 3
  ``connect("health_changed", self, "_on_health_changed")`` are connections.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import FileFacts, SignalConnection, SignalDefinition, SignalEmission

LAMBDA_HANDLER = "<lambda>"
BUS_NAMES = frozenset({"EventBus", "SignalBus"})

_ARGUMENT_NODE_TYPES = frozenset({"arguments", "argument_list"})
_SIGNAL_NODE_TYPES = frozenset({"signal_statement"})
_LAMBDA_NODE_TYPES = frozenset({"lambda"})
_SKIPPED_ARGUMENT_TYPES = frozenset({"comment", "(", ")", ","})

_IDENTIFIER_RE = re.compile(r"[A-Za-z_]\w*")
_STATIC_RECEIVER_RE = re.compile(
    r"""(?:self|[A-Za-z_]\w*|\$[\w/]+|\$"[^"]*"|%\w+)(?:\.[A-Za-z_]\w*)*"""
)
_STRING_RE = re.compile(r"""[&^]?(["'])(.*)\1""", re.DOTALL)
_SIGNAL_HEAD_RE = re.compile(r"signal\s+([A-Za-z_]\w*)")
_LAMBDA_TEXT_RE = re.compile(r"func\b")
_CALLABLE_RE = re.compile(r"Callable\s*\(")
_CALLEE_CHARS = frozenset("_$%/@&^")

_logger = get_logger("parsers.extractor")


@dataclass
class ExtractionStats:
    files_processed: int = 0
    definitions: int = 0
    emissions: int = 0
    connections: int = 0
    bus_signals: int = 0
    local_signals: int = 0


class SignalExtractor:
    """Maps a parsed tree into definition, emission and connection facts."""

    def __init__(self) -> None:
        self.stats = ExtractionStats()

    def reset_stats(self) -> None:
        self.stats = ExtractionStats()

    def extract(self, tree, file_path: str, source: Optional[bytes] = None) -> FileFacts:
        """Return every signal fact found in ``tree``."""
        root = tree.root_node
        if source is None:
            source = root.text or b""
        lines = source.decode("utf-8", errors="replace").splitlines()
        facts = FileFacts(file_path=file_path)
        stem = Path(file_path).stem

        for node in _walk(root):
            if node.type in _SIGNAL_NODE_TYPES:
                definition = self._definition(node, source, file_path, stem, lines)
                if definition is not None:
                    facts.definitions.append(definition)
            elif node.type in _ARGUMENT_NODE_TYPES:
                self._call_site(node, source, file_path, lines, facts)

        self.stats.files_processed += 1
        self.stats.definitions += len(facts.definitions)
        self.stats.emissions += len(facts.emissions)
        self.stats.connections += len(facts.connections)
        if stem in BUS_NAMES:
            self.stats.bus_signals += len(facts.definitions)
        else:
            self.stats.local_signals += len(facts.definitions)
        return facts

    # ------------------------------------------------------------------
    # Definitions

    def _definition(self, node, source: bytes, file_path: str, stem: str, lines: Sequence[str]) -> Optional[SignalDefinition]:
        text = _node_text(node, source)
        head = _SIGNAL_HEAD_RE.search(text)
        if head is None:
            return None
        name_node = node.child_by_field_name("name")
        name = _node_text(name_node, source).strip() if name_node is not None else head.group(1)
        if not _IDENTIFIER_RE.fullmatch(name):
            name = head.group(1)

        params: List[str] = []
        param_types = {}
        rest = text[head.end():].lstrip()
        if rest.startswith("("):
            inner = _enclosed(rest, 0)
            for part in _split_top_level(inner or "", ","):
                param, annotation = _parse_parameter(part)
                if param is None:
                    continue
                params.append(param)
                if annotation:
                    param_types[param] = annotation

        line = node.start_point[0] + 1
        return SignalDefinition(
            name=name,
            params=params,
            file_path=file_path,
            line=line,
            source=stem,
            param_types=param_types,
            context=_line_context(lines, line),
        )

    # ------------------------------------------------------------------
    # Calls

    def _call_site(self, args_node, source: bytes, file_path: str, lines: Sequence[str], facts: FileFacts) -> None:
        resolved = _resolve_callee(args_node, source)
        if resolved is None:
            return
        segments, callee_start = resolved
        operation = segments[-1]
        if operation not in {"emit", "emit_signal", "connect"}:
            return

        arg_nodes = [
            child
            for child in args_node.children
            if child.is_named and child.type not in _SKIPPED_ARGUMENT_TYPES
        ]
        arg_texts = [_node_text(child, source).strip() for child in arg_nodes]
        line = source.count(b"\n", 0, callee_start) + 1
        context = _line_context(lines, line)

        if operation == "emit":
            if len(segments) < 2 or not _IDENTIFIER_RE.fullmatch(segments[-2]):
                return
            facts.emissions.append(
                SignalEmission(
                    signal_name=segments[-2],
                    file_path=file_path,
                    line=line,
                    emitter=_join(segments[:-2]),
                    args=arg_texts,
                    context=context,
                )
            )
            return

        if operation == "emit_signal":
            signal_name = _string_value(arg_texts[0]) if arg_texts else None
            if not signal_name:
                return
            facts.emissions.append(
                SignalEmission(
                    signal_name=signal_name,
                    file_path=file_path,
                    line=line,
                    emitter=_join(segments[:-1]),
                    args=arg_texts[1:],
                    context=context,
                )
            )
            return

        legacy_name = _string_value(arg_texts[0]) if arg_texts else None
        if legacy_name and len(arg_texts) >= 2:
            signal_name = legacy_name
            receiver = _join(segments[:-1])
            handler_nodes, handler_texts = arg_nodes[1:], arg_texts[1:]
        else:
            if len(segments) < 2 or not _IDENTIFIER_RE.fullmatch(segments[-2]):
                return
            signal_name = segments[-2]
            receiver = _join(segments[:-2])
            handler_nodes, handler_texts = arg_nodes, arg_texts

        handler = _resolve_handler(handler_nodes, handler_texts)
        if handler is None:
            return
        name, is_lambda, flags = handler
        target = receiver if receiver and _STATIC_RECEIVER_RE.fullmatch(receiver) else None
        facts.connections.append(
            SignalConnection(
                signal_name=signal_name,
                file_path=file_path,
                line=line,
                handler=name,
                target=target,
                flags=flags,
                is_lambda=is_lambda,
                context=context,
            )
        )


def _walk(root) -> Iterator:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _node_text(node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _line_context(lines: Sequence[str], line: int) -> str:
    if 0 < line <= len(lines):
        return lines[line - 1].strip()
    return ""


def _join(segments: Sequence[str]) -> Optional[str]:
    return ".".join(segments) if segments else None


def _resolve_callee(args_node, source: bytes) -> Optional[Tuple[List[str], int]]:
    """Return the dotted callee preceding ``args_node`` and the byte offset where it starts.

    Walks up from the argument list while the text between the ancestor's start
    and the argument list is still a plain member chain, so ``a.b.emit`` is found
    whether the grammar nests it as calls of attributes or as a flat attribute.
    """
    best = None
    node = args_node.parent
    while node is not None and node.start_byte < args_node.start_byte:
        prefix = source[node.start_byte : args_node.start_byte].decode("utf-8", errors="ignore")
        segments = _callee_segments(prefix)
        if segments is None:
            break
        raw = source[node.start_byte : args_node.start_byte]
        best = (segments, node.start_byte + len(raw) - len(raw.lstrip()))
        node = node.parent
    return best


def _callee_segments(text: str) -> Optional[List[str]]:
    """Split a member chain on top-level dots; ``None`` when ``text`` is not one."""
    segments: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    gap = False
    for char in text.strip():
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if depth > 0:
            current.append(char)
            if char in "\"'":
                quote = char
            elif char in "([{":
                depth += 1
            elif char in ")]}":
                depth -= 1
            continue
        if char.isspace():
            if "".join(current).strip():
                gap = True
            continue
        if char == ".":
            segment = "".join(current).strip()
            if not segment:
                return None
            segments.append(segment)
            current = []
            gap = False
            continue
        if gap:
            return None
        if char in "\"'":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            return None
        elif not (char.isalnum() or char in _CALLEE_CHARS):
            return None
        current.append(char)
    if quote is not None or depth:
        return None
    segment = "".join(current).strip()
    if not segment:
        return None
    segments.append(segment)
    return segments


def _resolve_handler(nodes: Sequence, texts: Sequence[str]) -> Optional[Tuple[str, bool, List[str]]]:
    if not texts:
        return None
    first = texts[0]
    first_node = nodes[0] if nodes else None
    if (first_node is not None and first_node.type in _LAMBDA_NODE_TYPES) or _LAMBDA_TEXT_RE.match(first):
        return LAMBDA_HANDLER, True, list(texts[1:])

    unbound = _strip_bind(first)
    if _CALLABLE_RE.match(unbound):
        inner = _enclosed(unbound, unbound.index("("))
        callable_args = _split_top_level(inner or "", ",")
        if callable_args:
            method = callable_args[1] if len(callable_args) >= 2 else callable_args[0]
            return _handler_name(method), False, list(texts[1:])

    if len(texts) >= 2 and _string_value(texts[1]) is not None:
        return _string_value(texts[1]) or texts[1], False, list(texts[2:])

    return _handler_name(unbound), False, list(texts[1:])


def _handler_name(text: str) -> str:
    text = text.strip()
    literal = _string_value(text)
    if literal is not None:
        return literal
    segments = _callee_segments(_strip_bind(text))
    if segments and _IDENTIFIER_RE.fullmatch(segments[-1]):
        return segments[-1]
    return text


def _strip_bind(text: str) -> str:
    segments = _callee_segments(text)
    while segments and len(segments) > 1 and re.match(r"bind\s*\(", segments[-1]):
        segments = segments[:-1]
    if segments is None:
        return text.strip()
    return ".".join(segments)


def _string_value(text: str) -> Optional[str]:
    match = _STRING_RE.fullmatch(text.strip())
    if match is None:
        return None
    return match.group(2)


def _enclosed(text: str, open_index: int) -> Optional[str]:
    """Return the text between the bracket at ``open_index`` and its partner."""
    depth = 0
    quote: Optional[str] = None
    for index in range(open_index, len(text)):
        char = text[index]
        if quote is not None:
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if depth == 0:
                return text[open_index + 1 : index]
    return None


def _split_top_level(text: str, separator: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    for char in text:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [part for part in parts if part]


def _parse_parameter(text: str) -> Tuple[Optional[str], Optional[str]]:
    head = text
    if "=" in text:
        parts = _split_top_level(text, "=")
        head = parts[0] if parts else ""
    name, _, annotation = head.partition(":")
    name = name.strip()
    if not _IDENTIFIER_RE.fullmatch(name):
        return None, None
    annotation = annotation.strip()
    return name, annotation or None


__all__ = ["BUS_NAMES", "ExtractionStats", "LAMBDA_HANDLER", "SignalExtractor"]
