"""Tool-call extraction and validation for prompt-emulated function calling.

The model is asked to answer with ``{"tool_call": {"name": ..., "arguments":
{...}}}`` when it wants a tool run. Real output is messier: the object may be
fenced, wrapped in prose, or name a tool that was never offered. Extraction
here is pure and never raises; anything short of a well-formed call to a
declared tool means "no tool call" and the text stands as the answer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from toolshim.types import FunctionCall

if TYPE_CHECKING:
    from collections.abc import Iterable

    from toolshim.types import FunctionDeclaration

log = logging.getLogger(__name__)

TOOL_CALL_KEY = "tool_call"

_FENCE_OPEN_RE = re.compile(r"```(?:json)?\s*(?=\{)")
_FENCE_CLOSE_RE = re.compile(r"\s*```")
_KEY_LITERAL = f'"{TOOL_CALL_KEY}"'


@dataclass(frozen=True)
class ParsedToolCall:
    """A validated tool invocation extracted from model text."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)

    def to_function_call(self) -> FunctionCall:
        """Convert to the generic function-call part payload."""
        return FunctionCall(name=self.name, args=self.args)


def _balanced_object_end(text: str, start: int) -> int | None:
    """Return the index just past the ``}`` matching ``text[start] == '{'``.

    Braces inside JSON string literals do not count.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _fenced_object(text: str) -> str | None:
    for opening in _FENCE_OPEN_RE.finditer(text):
        start = opening.end()
        end = _balanced_object_end(text, start)
        if end is not None and _FENCE_CLOSE_RE.match(text, end):
            return text[start:end]
    return None


def find_tool_call_span(text: str) -> str | None:
    """Locate the candidate JSON text of a tool call; first match wins.

    1. The contents of the first fenced code block holding a JSON object.
    2. Otherwise the object enclosing the first ``"tool_call"`` key: scan left
       to the nearest ``{`` and brace-match forward from there.
    """
    fenced = _fenced_object(text)
    if fenced is not None:
        return fenced

    key_at = text.find(_KEY_LITERAL)
    if key_at < 0:
        return None
    start = text.rfind("{", 0, key_at)
    if start < 0:
        return None
    end = _balanced_object_end(text, start)
    if end is None:
        return None
    return text[start:end]


def _coerce_arguments(raw: Any) -> dict[str, Any] | None:
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        # Some models double-encode arguments the way OpenAI's API does.
        try:
            decoded = json.loads(raw) if raw.strip() else {}
        except ValueError:
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def parse_tool_call(span: str) -> ParsedToolCall | None:
    """Parse a candidate span without checking the declared tool set."""
    try:
        parsed = json.loads(span)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None
    call = parsed.get(TOOL_CALL_KEY)
    if not isinstance(call, dict):
        return None
    name = call.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    args = _coerce_arguments(call.get("arguments"))
    if args is None:
        return None
    return ParsedToolCall(name=name.strip(), args=args)


def declared_tool_names(declarations: Iterable[FunctionDeclaration]) -> frozenset[str]:
    """Names of the declared tool set."""
    return frozenset(d.name for d in declarations)


def extract_tool_call(
    text: str, declarations: Iterable[FunctionDeclaration]
) -> ParsedToolCall | None:
    """Extract a tool call from raw model text and validate it.

    Args:
        text: Raw model output.
        declarations: The request's declared tools.

    Returns:
        The parsed call when it is well-formed and names a declared tool,
        otherwise None.
    """
    if not text or _KEY_LITERAL not in text:
        return None
    span = find_tool_call_span(text)
    if span is None:
        return None
    call = parse_tool_call(span)
    if call is None:
        return None

    if call.name not in declared_tool_names(declarations):
        log.debug("Ignoring call to undeclared tool %r", call.name)
        return None
    return call
