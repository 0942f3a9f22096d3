"""Message format conversion: generic turns to flat backend chat messages.

Tool calls and tool results have no structured home in a plain chat
transcript, so both are rendered as text the model can read back. A prior
function call becomes the same fenced ``{"tool_call": ...}`` block the model
is instructed to emit, which keeps the conversation self-consistent.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import TYPE_CHECKING, Any

from toolshim.providers.models import BackendMessage
from toolshim.request import normalize_contents, normalize_system_instruction

if TYPE_CHECKING:
    from collections.abc import Iterable

    from toolshim.types import (
        Content,
        ContentsInput,
        FunctionCall,
        FunctionResponse,
        Part,
        SystemInstructionInput,
    )

_ROLE_MAP = {"model": "assistant", "user": "user"}


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def render_function_call(call: FunctionCall) -> str:
    """Render a prior tool invocation as a fenced JSON block."""
    payload = {"tool_call": {"name": call.name, "arguments": dict(call.args)}}
    body = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    return f"\n```json\n{body}\n```\n"


def render_function_response(response: FunctionResponse) -> str:
    """Render a tool result as a short text report."""
    result = response.response
    if isinstance(result, Mapping):
        if "llmContent" in result:
            content = result["llmContent"]
            text = content if isinstance(content, str) else _to_json(content)
        else:
            text = _to_json(dict(result))
    elif result is None:
        text = ""
    else:
        text = str(result)
    return f'\nTool "{response.name}" returned:\n{text}\n'


def part_to_text(part: Part) -> str:
    """Flatten a single part. Opaque data is referenced, never embedded."""
    if part.text is not None:
        return part.text
    if part.function_call is not None:
        return render_function_call(part.function_call)
    if part.function_response is not None:
        return render_function_response(part.function_response)
    if part.inline_data is not None:
        return f"[Inline data: {part.inline_data.mime_type}]"
    if part.file_data is not None:
        return f"[File: {part.file_data.file_uri}]"
    return ""


def parts_to_text(parts: Iterable[Part]) -> str:
    """Flatten parts into one string, in order."""
    return "".join(part_to_text(p) for p in parts)


def system_instruction_text(instruction: SystemInstructionInput | None) -> str:
    """Flatten any accepted system-instruction shape into text."""
    return parts_to_text(normalize_system_instruction(instruction))


def contents_to_messages(contents: Iterable[Content]) -> list[BackendMessage]:
    """Map turns to backend messages, dropping turns that flatten to nothing."""
    messages: list[BackendMessage] = []
    for content in contents:
        text = parts_to_text(content.parts)
        if not text:
            continue
        messages.append(BackendMessage(role=_ROLE_MAP[content.role], content=text))
    return messages


def to_backend_messages(
    contents: ContentsInput, system_text: str = ""
) -> list[BackendMessage]:
    """Build the backend transcript: optional system message, then the turns.

    ``system_text`` is expected to already carry any injected tool
    instructions; it is omitted entirely when empty.
    """
    messages: list[BackendMessage] = []
    if system_text:
        messages.append(BackendMessage(role="system", content=system_text))
    messages.extend(contents_to_messages(normalize_contents(contents)))
    return messages
