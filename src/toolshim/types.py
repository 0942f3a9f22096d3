"""Library-owned content-generator types.

These mirror the generic multi-turn content model the surrounding agent
framework speaks (turns made of parts, tool declarations, candidates with
usage metadata) without depending on any vendor SDK.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
from types import MappingProxyType
import typing

Role = typing.Literal["user", "model"]


def _check(
    condition: bool,
    field_name: str,
    message: str,
    exc: type[Exception] = ValueError,
) -> None:
    if not condition:
        raise exc(f"{field_name}: {message}")


def _is_tuple_of(value: object, typ: type) -> bool:
    return isinstance(value, tuple) and all(isinstance(v, typ) for v in value)


def _freeze_mapping(
    m: typing.Mapping[str, typing.Any],
) -> typing.Mapping[str, typing.Any]:
    """Read-only view of *m*; an existing view is reused."""
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


class FinishReason(enum.StrEnum):
    """Terminal classification of why generation ended."""

    FINISH_REASON_UNSPECIFIED = "FINISH_REASON_UNSPECIFIED"
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"


@dataclasses.dataclass(frozen=True, slots=True)
class FunctionCall:
    """A tool invocation requested by the model."""

    name: str
    args: typing.Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate and freeze the argument mapping."""
        _check(
            isinstance(self.name, str) and self.name != "",
            "name",
            "must be a non-empty str",
            TypeError,
        )
        _check(
            isinstance(self.args, typing.Mapping), "args", "must be a mapping", TypeError
        )
        object.__setattr__(self, "args", _freeze_mapping(self.args))


@dataclasses.dataclass(frozen=True, slots=True)
class FunctionResponse:
    """The result of executing a tool, fed back to the model."""

    name: str
    response: typing.Any = None


@dataclasses.dataclass(frozen=True, slots=True)
class Blob:
    """Inline binary content. Only its MIME type ever reaches the backend."""

    mime_type: str
    data: bytes = b""


@dataclasses.dataclass(frozen=True, slots=True)
class FileData:
    """Reference to a file by URI."""

    file_uri: str
    mime_type: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class Part:
    """One unit of turn content; exactly one field is populated."""

    text: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None
    inline_data: Blob | None = None
    file_data: FileData | None = None

    def __post_init__(self) -> None:
        """Enforce the tagged-union invariant."""
        populated = [
            f.name
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        ]
        _check(
            len(populated) == 1,
            "Part",
            f"exactly one variant must be set, got {populated or 'none'}",
        )
        _check(
            self.text is None or isinstance(self.text, str),
            "text",
            "must be a str",
            TypeError,
        )

    @classmethod
    def from_text(cls, text: str) -> Part:
        """Build a text part."""
        return cls(text=text)

    @classmethod
    def from_function_call(
        cls, name: str, args: typing.Mapping[str, typing.Any] | None = None
    ) -> Part:
        """Build a function-call part."""
        return cls(function_call=FunctionCall(name=name, args=args or {}))

    @classmethod
    def from_function_response(cls, name: str, response: typing.Any) -> Part:
        """Build a function-response part."""
        return cls(function_response=FunctionResponse(name=name, response=response))


@dataclasses.dataclass(frozen=True, slots=True)
class Content:
    """One role-tagged turn of a conversation."""

    role: Role = "user"
    parts: tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        """Validate role and coerce parts to a tuple."""
        _check(
            self.role in ("user", "model"),
            "role",
            f"must be 'user' or 'model', got {self.role!r}",
        )
        if isinstance(self.parts, list):
            object.__setattr__(self, "parts", tuple(self.parts))
        _check(
            _is_tuple_of(self.parts, Part), "parts", "must be a sequence of Part", TypeError
        )


@dataclasses.dataclass(frozen=True, slots=True)
class FunctionDeclaration:
    """A named, schema-described capability the model may ask to invoke.

    ``parameters`` is JSON-Schema-like: ``{"type": "object", "properties":
    {name: {"type": ..., "description": ...}}, "required": [...]}``.
    """

    name: str
    description: str = ""
    parameters: typing.Mapping[str, typing.Any] | None = None

    def __post_init__(self) -> None:
        """Validate the declaration name."""
        _check(
            isinstance(self.name, str) and self.name.strip() != "",
            "name",
            "must be a non-empty str",
            TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class Tool:
    """A group of function declarations."""

    function_declarations: tuple[FunctionDeclaration, ...] = ()

    def __post_init__(self) -> None:
        """Coerce declarations to a tuple."""
        if isinstance(self.function_declarations, list):
            object.__setattr__(
                self, "function_declarations", tuple(self.function_declarations)
            )
        _check(
            _is_tuple_of(self.function_declarations, FunctionDeclaration),
            "function_declarations",
            "must be a sequence of FunctionDeclaration",
            TypeError,
        )


# Shapes accepted at the request boundary before normalization.
type PartLike = Part | str
type ContentsInput = str | Part | Content | typing.Sequence[Content | PartLike]
type SystemInstructionInput = str | Part | Content | typing.Sequence[PartLike]


@dataclasses.dataclass(frozen=True)
class GenerateContentConfig:
    """Per-request generation settings."""

    system_instruction: SystemInstructionInput | None = None
    tools: typing.Sequence[Tool] | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    #: Set by the caller to abort the in-flight request.
    abort_signal: asyncio.Event | None = None


@dataclasses.dataclass(frozen=True)
class GenerateContentRequest:
    """A generic generation request."""

    contents: ContentsInput
    config: GenerateContentConfig = dataclasses.field(
        default_factory=GenerateContentConfig
    )


@dataclasses.dataclass(frozen=True, slots=True)
class UsageMetadata:
    """Token accounting; may be an estimate when the backend is silent."""

    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


@dataclasses.dataclass(frozen=True, slots=True)
class Candidate:
    """One generated answer."""

    content: Content
    finish_reason: FinishReason | None = None
    index: int = 0


@dataclasses.dataclass(frozen=True, slots=True)
class GenerateContentResponse:
    """A complete response or one partial response of a stream."""

    candidates: tuple[Candidate, ...]
    usage_metadata: UsageMetadata | None = None

    @property
    def text(self) -> str | None:
        """Concatenated text of the first candidate, or None without text parts."""
        if not self.candidates:
            return None
        texts = [p.text for p in self.candidates[0].content.parts if p.text is not None]
        return "".join(texts) if texts else None

    @property
    def function_calls(self) -> list[FunctionCall]:
        """Function calls carried by the first candidate."""
        if not self.candidates:
            return []
        return [
            p.function_call
            for p in self.candidates[0].content.parts
            if p.function_call is not None
        ]


@dataclasses.dataclass(frozen=True, slots=True)
class CountTokensResponse:
    """Estimated token count."""

    total_tokens: int


@dataclasses.dataclass(frozen=True)
class EmbedContentRequest:
    """Embedding request; accepted only so the call can be refused."""

    contents: ContentsInput
