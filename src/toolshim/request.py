"""Request boundary normalization.

The surrounding framework hands over contents and system instructions in
several shapes. Everything is resolved here, once, into canonical tuples so
downstream code only ever sees ``tuple[Content, ...]`` and
``tuple[Part, ...]``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolshim.errors import ConfigurationError
from toolshim.types import Content, FunctionDeclaration, Part, Tool

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolshim.types import ContentsInput, SystemInstructionInput


def normalize_parts(parts: object) -> tuple[Part, ...]:
    """Coerce a part, a string, or a sequence of either into a tuple of Part."""
    if parts is None:
        return ()
    if isinstance(parts, str):
        return (Part.from_text(parts),)
    if isinstance(parts, Part):
        return (parts,)
    if isinstance(parts, (list, tuple)):
        normalized: list[Part] = []
        for i, p in enumerate(parts):
            if isinstance(p, str):
                normalized.append(Part.from_text(p))
            elif isinstance(p, Part):
                normalized.append(p)
            else:
                raise ConfigurationError(
                    f"parts[{i}] must be a Part or str, got {type(p).__name__}",
                    hint="Use Part.from_text(...) or a plain string.",
                )
        return tuple(normalized)
    raise ConfigurationError(
        f"Unsupported parts value: {type(parts).__name__}",
        hint="Pass a Part, a string, or a list of them.",
    )


def normalize_contents(contents: ContentsInput) -> tuple[Content, ...]:
    """Resolve request contents into an ordered tuple of turns.

    A bare string becomes one user turn. A lone Part, or a list made only of
    parts, becomes one user turn holding those parts. Otherwise each list
    item is a turn, with strings and stray parts wrapped as user turns.
    """
    if isinstance(contents, str):
        return (Content(role="user", parts=(Part.from_text(contents),)),)
    if isinstance(contents, Content):
        return (contents,)
    if isinstance(contents, Part):
        return (Content(role="user", parts=(contents,)),)
    if not isinstance(contents, (list, tuple)):
        raise ConfigurationError(
            f"Unsupported contents value: {type(contents).__name__}",
            hint="Pass a string, a Content, or a list of Content.",
        )

    if contents and all(isinstance(c, Part) for c in contents):
        return (Content(role="user", parts=tuple(contents)),)

    turns: list[Content] = []
    for i, item in enumerate(contents):
        if isinstance(item, Content):
            turns.append(item)
        elif isinstance(item, str):
            turns.append(Content(role="user", parts=(Part.from_text(item),)))
        elif isinstance(item, Part):
            turns.append(Content(role="user", parts=(item,)))
        else:
            raise ConfigurationError(
                f"contents[{i}] must be Content, Part or str, got {type(item).__name__}",
            )
    return tuple(turns)


def normalize_system_instruction(
    instruction: SystemInstructionInput | None,
) -> tuple[Part, ...]:
    """Resolve a system instruction of any accepted shape into parts."""
    if instruction is None:
        return ()
    if isinstance(instruction, Content):
        return instruction.parts
    return normalize_parts(instruction)


def function_declarations(
    tools: Sequence[Tool] | None,
) -> tuple[FunctionDeclaration, ...]:
    """Collect the declared tool set across every Tool entry.

    Raises:
        ConfigurationError: If two declarations share a name.
    """
    if not tools:
        return ()
    seen: set[str] = set()
    declarations: list[FunctionDeclaration] = []
    for tool in tools:
        for decl in tool.function_declarations:
            if decl.name in seen:
                raise ConfigurationError(
                    f"Duplicate tool declaration: {decl.name!r}",
                    hint="Tool names must be unique within a request.",
                )
            seen.add(decl.name)
            declarations.append(decl)
    return tuple(declarations)
