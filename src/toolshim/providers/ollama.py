"""Ollama content generator over the OpenAI-compatible chat API.

Models served this way (gemma2 and friends) have no native tool calling, so
tools are described in the system prompt and calls are recovered from the
model's text. See ``toolshim.instructions`` and ``toolshim.toolcall``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import logging
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import ValidationError

from toolshim.config import Config
from toolshim.convert import parts_to_text, system_instruction_text, to_backend_messages
from toolshim.errors import APIError, RequestAbortedError, UnsupportedOperationError
from toolshim.instructions import inject_tool_instructions
from toolshim.providers._errors import status_error, wrap_provider_error
from toolshim.providers.models import ChatCompletion, ChatCompletionRequest
from toolshim.request import function_declarations, normalize_contents
from toolshim.response import StreamAssembler, build_response, estimate_tokens
from toolshim.types import CountTokensResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Coroutine
    from types import TracebackType

    from toolshim.types import (
        EmbedContentRequest,
        FunctionDeclaration,
        GenerateContentRequest,
        GenerateContentResponse,
    )

log = logging.getLogger(__name__)

PROVIDER = "ollama"

_STREAM_END = object()


@dataclass(frozen=True)
class PreparedRequest:
    """A request translated for the backend, plus what the response side needs."""

    body: ChatCompletionRequest
    declarations: tuple[FunctionDeclaration, ...]

    @property
    def prompt_text(self) -> str:
        """Flattened transcript, used for usage estimates."""
        return "\n".join(m.content for m in self.body.messages)


def _aborted(signal: asyncio.Event | None) -> bool:
    return signal is not None and signal.is_set()


async def _unless_aborted[T](
    coro: Coroutine[Any, Any, T], signal: asyncio.Event | None
) -> T:
    """Await *coro*, cancelling it if *signal* fires first."""
    if signal is None:
        return await coro
    if signal.is_set():
        coro.close()
        raise RequestAbortedError("Request aborted before it was sent")

    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            await asyncio.wait({task})
    if task.cancelled():
        raise RequestAbortedError("Request aborted by caller")
    return task.result()


class OllamaContentGenerator:
    """Content generator backed by a local Ollama server.

    Stateless per request: the only state held across calls is the
    configuration and the HTTP client.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a generator; *client* is created lazily when not injected."""
        self.config = config if config is not None else Config()
        self._client = client
        self._owns_client = client is None
        log.debug(
            "OllamaContentGenerator initialized: %s with model %s",
            self.config.base_url,
            self.config.model,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_s),
                headers={"Content-Type": "application/json"},
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this generator created it."""
        client = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        await client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def prepare(self, request: GenerateContentRequest, *, stream: bool) -> PreparedRequest:
        """Translate a generic request into the backend request body."""
        cfg = request.config
        declarations = function_declarations(cfg.tools)
        system_text = inject_tool_instructions(
            system_instruction_text(cfg.system_instruction), declarations
        )
        body = ChatCompletionRequest(
            model=self.config.model,
            messages=to_backend_messages(request.contents, system_text),
            stream=stream,
            temperature=cfg.temperature,
            max_tokens=cfg.max_output_tokens,
        )
        return PreparedRequest(body=body, declarations=declarations)

    def _log_payload(self, label: str, payload: object) -> None:
        if self.config.debug:
            log.debug("%s: %s", label, json.dumps(payload, indent=2, default=str))

    async def _post(self, payload: dict[str, object]) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.post(self.config.chat_completions_url, json=payload)
        except httpx.HTTPError as e:
            raise wrap_provider_error(e, provider=PROVIDER, phase="generate") from e
        if not response.is_success:
            raise status_error(
                response.status_code, response.text, provider=PROVIDER, phase="generate"
            )
        return response

    async def generate_content(
        self,
        request: GenerateContentRequest,
        user_prompt_id: str | None = None,
    ) -> GenerateContentResponse:
        """Generate one complete response.

        Raises:
            APIError: On transport failure or a non-2xx status.
            RequestAbortedError: If the request's abort signal fires first.
        """
        prepared = self.prepare(request, stream=False)
        payload = prepared.body.to_payload()
        log.debug("generate_content prompt_id=%s", user_prompt_id)
        self._log_payload("Ollama request", payload)

        response = await _unless_aborted(
            self._post(payload), request.config.abort_signal
        )
        try:
            completion = ChatCompletion.model_validate_json(response.content)
        except ValidationError as e:
            raise APIError(
                "Malformed completion from backend",
                provider=PROVIDER,
                phase="generate",
            ) from e
        self._log_payload("Ollama response", completion.model_dump())

        return build_response(
            completion, prepared.declarations, prompt_text=prepared.prompt_text
        )

    async def generate_content_stream(
        self,
        request: GenerateContentRequest,
        user_prompt_id: str | None = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        """Stream partial responses as the backend produces them.

        Each text increment is yielded as soon as its frame arrives. When tools
        were declared and the accumulated text turns out to be a valid tool
        call, one last response carrying the function call follows; callers
        must let it supersede the text streamed for this turn.

        The HTTP exchange runs in its own task so that the abort signal can
        interrupt a read that is waiting on the network.
        """
        prepared = self.prepare(request, stream=True)
        payload = prepared.body.to_payload()
        signal = request.config.abort_signal
        log.debug("generate_content_stream prompt_id=%s", user_prompt_id)
        self._log_payload("Ollama stream request", payload)
        if _aborted(signal):
            return

        assembler = StreamAssembler(
            prepared.declarations, prompt_text=prepared.prompt_text
        )
        queue: asyncio.Queue[object] = asyncio.Queue(maxsize=1)
        reader = asyncio.create_task(self._pump_stream(payload, assembler, queue))
        try:
            while True:
                try:
                    item = await _unless_aborted(queue.get(), signal)
                except RequestAbortedError:
                    log.debug("Stream aborted by caller")
                    return
                if item is _STREAM_END:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item  # type: ignore[misc]
        finally:
            if not reader.done():
                reader.cancel()
            await asyncio.wait({reader})

    async def _pump_stream(
        self,
        payload: dict[str, object],
        assembler: StreamAssembler,
        queue: asyncio.Queue[object],
    ) -> None:
        # Failures travel through the queue so they arrive after the
        # responses that preceded them.
        try:
            await self._read_stream(payload, assembler, queue)
        except Exception as e:
            await queue.put(e)
        else:
            await queue.put(_STREAM_END)

    async def _read_stream(
        self,
        payload: dict[str, object],
        assembler: StreamAssembler,
        queue: asyncio.Queue[object],
    ) -> None:
        client = self._get_client()
        try:
            async with client.stream(
                "POST", self.config.chat_completions_url, json=payload
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    raise status_error(
                        response.status_code,
                        body.decode("utf-8", errors="replace"),
                        provider=PROVIDER,
                        phase="stream",
                    )
                async for line in response.aiter_lines():
                    for partial in assembler.feed_line(line):
                        await queue.put(partial)
                    if assembler.done:
                        break
        except httpx.HTTPError as e:
            raise wrap_provider_error(e, provider=PROVIDER, phase="stream") from e
        for partial in assembler.finish():
            await queue.put(partial)

    async def count_tokens(self, request: GenerateContentRequest) -> CountTokensResponse:
        """Estimate the request's tokens; the backend has no counting endpoint."""
        contents = normalize_contents(request.contents)
        text = parts_to_text(p for c in contents for p in c.parts)
        return CountTokensResponse(total_tokens=estimate_tokens(text))

    async def embed_content(self, request: EmbedContentRequest) -> object:
        """Always fails: embeddings are not offered by this generator."""
        raise UnsupportedOperationError(
            "Ollama embed_content is not implemented",
            hint="Use a dedicated embedding model client.",
        )
