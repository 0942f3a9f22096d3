"""Tool instructions injected into the system prompt.

Models without a native function-calling API still follow instructions well,
so the declared tools are described in prose and the model is told to answer
with a single JSON object whenever it wants one of them run. Without this
step the backend is a plain chat model.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolshim.types import FunctionDeclaration

TOOL_CALLING_PROTOCOL = """\
## Tool Calling Protocol

When you need to call a tool, respond with ONLY a JSON object in this exact format:
```json
{
  "tool_call": {
    "name": "tool_name",
    "arguments": {
      "param1": "value1",
      "param2": "value2"
    }
  }
}
```

IMPORTANT:
- Output the JSON object only when you want to call a tool, and nothing else in that response
- "name" must be one of the tools listed above
- Use the exact parameter names from the tool's parameter list
- Call one tool per response; you will receive its result before continuing
- If you don't need a tool, respond normally with plain text
"""


def _describe_parameters(parameters: Mapping[str, Any] | None) -> list[str]:
    if not parameters:
        return ["- (none)"]
    properties = parameters.get("properties") or {}
    if not isinstance(properties, Mapping) or not properties:
        return ["- (none)"]
    required = set(parameters.get("required") or ())

    lines: list[str] = []
    for name, spec in properties.items():
        spec = spec if isinstance(spec, Mapping) else {}
        kind = str(spec.get("type", "any")).lower()
        is_required = name in required or spec.get("required") is True
        flag = "required" if is_required else "optional"
        description = spec.get("description", "")
        line = f"- {name} ({kind}, {flag})"
        lines.append(f"{line}: {description}" if description else line)
    return lines


def render_tool_catalog(declarations: Sequence[FunctionDeclaration]) -> str:
    """Render the declared tools as a markdown catalog."""
    sections = ["## Available Tools", "", "You have access to the following tools:"]
    for decl in declarations:
        sections.append("")
        sections.append(f"### {decl.name}")
        if decl.description:
            sections.append(decl.description.strip())
        sections.append("Parameters:")
        sections.extend(_describe_parameters(decl.parameters))
    return "\n".join(sections)


def inject_tool_instructions(
    system_text: str, declarations: Sequence[FunctionDeclaration]
) -> str:
    """Append the tool catalog and calling protocol to *system_text*.

    Returns *system_text* unchanged when nothing is declared.
    """
    if not declarations:
        return system_text
    block = f"{render_tool_catalog(declarations)}\n\n{TOOL_CALLING_PROTOCOL}"
    if not system_text.strip():
        return block
    return f"{system_text.rstrip()}\n\n{block}"
