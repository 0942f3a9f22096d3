"""Response adaptation: backend completions to generic generation responses.

Single-shot completions are decided once, on the full content. Streams pass
text increments straight through and only look for a tool call when the
backend signals completion; a call found then is emitted as one extra,
final response that supersedes the text already streamed for the turn.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from pydantic import ValidationError

from toolshim._http import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from toolshim.errors import APIError
from toolshim.providers.models import ChatCompletionChunk
from toolshim.toolcall import extract_tool_call
from toolshim.types import (
    Candidate,
    Content,
    FinishReason,
    GenerateContentResponse,
    Part,
    UsageMetadata,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from toolshim.providers.models import ChatCompletion, CompletionUsage
    from toolshim.types import FunctionCall, FunctionDeclaration

log = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Approximate token count at four characters per token.

    This is an estimate only; the backend exposes no tokenizer endpoint.
    """
    return math.ceil(len(text) / 4)


def map_finish_reason(reason: str | None) -> FinishReason | None:
    """Map a backend finish reason; None while generation is still running."""
    if reason is None:
        return None
    if reason == "length":
        return FinishReason.MAX_TOKENS
    return FinishReason.STOP


def usage_metadata(
    usage: CompletionUsage | None, *, prompt_text: str, output_text: str
) -> UsageMetadata:
    """Backend-reported usage, or an estimate when the backend is silent."""
    if usage is not None:
        return UsageMetadata(
            prompt_token_count=usage.prompt_tokens,
            candidates_token_count=usage.completion_tokens,
            total_token_count=usage.total_tokens,
        )
    prompt_tokens = estimate_tokens(prompt_text)
    output_tokens = estimate_tokens(output_text)
    return UsageMetadata(
        prompt_token_count=prompt_tokens,
        candidates_token_count=output_tokens,
        total_token_count=prompt_tokens + output_tokens,
    )


def _single_part_response(
    part: Part,
    finish_reason: FinishReason | None,
    usage: UsageMetadata | None,
) -> GenerateContentResponse:
    candidate = Candidate(
        content=Content(role="model", parts=(part,)),
        finish_reason=finish_reason,
        index=0,
    )
    return GenerateContentResponse(candidates=(candidate,), usage_metadata=usage)


def text_response(
    text: str,
    finish_reason: FinishReason | None = None,
    usage: UsageMetadata | None = None,
) -> GenerateContentResponse:
    """Wrap text as a one-candidate model response."""
    return _single_part_response(Part(text=text), finish_reason, usage)


def function_call_response(
    call: FunctionCall,
    finish_reason: FinishReason | None = FinishReason.STOP,
    usage: UsageMetadata | None = None,
) -> GenerateContentResponse:
    """Wrap a function call as a one-candidate model response."""
    return _single_part_response(Part(function_call=call), finish_reason, usage)


def build_response(
    completion: ChatCompletion,
    declarations: Iterable[FunctionDeclaration] = (),
    *,
    prompt_text: str = "",
) -> GenerateContentResponse:
    """Convert a complete backend completion.

    The extractor only runs when tools were declared. The single candidate
    holds either one function-call part or one text part, never both.
    """
    if not completion.choices:
        raise APIError(
            "Backend returned a completion without choices",
            provider="ollama",
            phase="generate",
        )
    choice = completion.choices[0]
    content = choice.message.content or ""
    declarations = tuple(declarations)

    call = extract_tool_call(content, declarations) if declarations else None
    log.debug(
        "Converting completion: tools=%d tool_call=%s",
        len(declarations),
        call.name if call else None,
    )

    usage = usage_metadata(
        completion.usage, prompt_text=prompt_text, output_text=content
    )
    finish_reason = map_finish_reason(choice.finish_reason) or FinishReason.STOP
    if call is not None:
        return function_call_response(call.to_function_call(), finish_reason, usage)
    return text_response(content, finish_reason, usage)


class StreamAssembler:
    """Per-request state machine over a streamed completion's SSE lines.

    Feed it one line at a time; each call returns the partial responses to
    yield, in order. State never outlives the request that owns it.

    Ollama reports usage in a trailing frame after the one carrying the
    finish reason, so the tool-call decision waits for ``[DONE]`` (or for
    ``finish()`` when the body ends without one).
    """

    def __init__(
        self,
        declarations: Iterable[FunctionDeclaration] = (),
        *,
        prompt_text: str = "",
    ) -> None:
        """Start an empty accumulation for one stream."""
        self._declarations = tuple(declarations)
        self._prompt_text = prompt_text
        self._chunks: list[str] = []
        self._usage: CompletionUsage | None = None
        self._finished = False
        self._decided = False
        self.done = False

    @property
    def text(self) -> str:
        """All text increments received so far."""
        return "".join(self._chunks)

    def feed_line(self, line: str) -> list[GenerateContentResponse]:
        """Consume one SSE line. Malformed frames are logged and skipped."""
        line = line.strip()
        if not line.startswith(SSE_DATA_PREFIX):
            return []
        data = line[len(SSE_DATA_PREFIX) :].strip()
        if data == SSE_DONE_SENTINEL:
            self.done = True
            return self.finish()
        try:
            chunk = ChatCompletionChunk.model_validate_json(data)
        except ValidationError as e:
            log.warning("Skipping malformed stream frame: %s", e)
            return []
        return self.feed_chunk(chunk)

    def feed_chunk(self, chunk: ChatCompletionChunk) -> list[GenerateContentResponse]:
        """Consume one parsed frame."""
        if chunk.usage is not None:
            self._usage = chunk.usage
        if not chunk.choices:
            return []

        choice = chunk.choices[0]
        responses: list[GenerateContentResponse] = []
        if choice.delta.content:
            self._chunks.append(choice.delta.content)
            responses.append(
                text_response(
                    choice.delta.content, map_finish_reason(choice.finish_reason)
                )
            )
        if choice.finish_reason is not None:
            self._finished = True
        return responses

    def finish(self) -> list[GenerateContentResponse]:
        """Close the stream; returns the tool-call override, if any.

        Only a stream that reported a finish reason is considered, and the
        decision is made at most once.
        """
        if not self._finished or self._decided:
            return []
        self._decided = True
        override = self._tool_call_override()
        return [override] if override is not None else []

    def _tool_call_override(self) -> GenerateContentResponse | None:
        if not self._declarations:
            return None
        text = self.text
        call = extract_tool_call(text, self._declarations)
        if call is None:
            return None
        log.debug("Stream finished with a call to %r", call.name)
        usage = usage_metadata(
            self._usage, prompt_text=self._prompt_text, output_text=text
        )
        return function_call_response(call.to_function_call(), FinishReason.STOP, usage)
