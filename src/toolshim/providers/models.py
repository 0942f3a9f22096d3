"""Wire models for the backend's OpenAI-compatible chat-completions API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

BackendRole = Literal["system", "user", "assistant"]


class BackendMessage(BaseModel):
    """A flat role/text chat message."""

    model_config = ConfigDict(frozen=True)

    role: BackendRole
    content: str


class ChatCompletionRequest(BaseModel):
    """POST body for ``/v1/chat/completions``."""

    model: str
    messages: list[BackendMessage]
    stream: bool = False
    temperature: float | None = None
    max_tokens: int | None = None

    def to_payload(self) -> dict[str, object]:
        """JSON body with unset sampling parameters omitted."""
        return self.model_dump(exclude_none=True)


class CompletionUsage(BaseModel):
    """Backend-reported token counts."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None


class CompletionChoice(BaseModel):
    index: int = 0
    message: CompletionMessage
    finish_reason: str | None = None


class ChatCompletion(BaseModel):
    """Non-streaming completion body."""

    id: str | None = None
    model: str | None = None
    choices: list[CompletionChoice] = Field(default_factory=list)
    usage: CompletionUsage | None = None


class ChoiceDelta(BaseModel):
    role: str | None = None
    content: str | None = None


class StreamChoice(BaseModel):
    index: int = 0
    delta: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """One ``data:`` frame of a streamed completion."""

    id: str | None = None
    model: str | None = None
    choices: list[StreamChoice] = Field(default_factory=list)
    usage: CompletionUsage | None = None
