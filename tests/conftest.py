"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, and a fake backend
built on ``httpx.MockTransport`` so generator tests never touch the network.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from dataclasses import dataclass, field
import json
import logging
import os
from typing import Any

import httpx
import pytest

from toolshim.config import Config
from toolshim.providers.ollama import OllamaContentGenerator
from toolshim.types import FunctionDeclaration, Tool

BASE_URL = "http://ollama.test:11434"
TEST_MODEL = "gemma2:27b"


# =============================================================================
# Test Doubles
# =============================================================================


class RecordingStream(httpx.AsyncByteStream):
    """Response body that yields preset chunks and records its release.

    After the chunks it can stall until cancelled (``stall=True``) or raise
    ``error``, standing in for a backend that hangs or drops mid-body.
    """

    def __init__(
        self,
        chunks: list[bytes],
        *,
        stall: bool = False,
        error: Exception | None = None,
    ) -> None:
        self._chunks = chunks
        self._stall = stall
        self._error = error
        self.stalled = asyncio.Event()
        self.yielded = 0
        self.close_calls = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            self.yielded += 1
            yield chunk
        if self._error is not None:
            raise self._error
        if self._stall:
            self.stalled.set()
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.close_calls += 1


@dataclass
class FakeBackend:
    """Programmable chat-completions endpoint.

    Captures every request body. Respond with a JSON completion, a list of
    SSE frames, or an arbitrary status/body pair.
    """

    status_code: int = 200
    completion: dict[str, Any] | None = None
    sse_frames: list[str] | None = None
    error_body: str = ""
    requests: list[dict[str, Any]] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    streams: list[RecordingStream] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.urls.append(str(request.url))
        self.requests.append(json.loads(request.content))
        if self.status_code >= 300:
            return httpx.Response(self.status_code, text=self.error_body)
        if self.sse_frames is not None:
            body = sse_body(self.sse_frames)
            # Split mid-line so line reassembly is exercised.
            pivot = len(body) // 2
            stream = RecordingStream([body[:pivot], body[pivot:]])
            self.streams.append(stream)
            return httpx.Response(
                200, headers={"content-type": "text/event-stream"}, stream=stream
            )
        return httpx.Response(200, json=self.completion or completion_body(""))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def completion_body(
    content: str,
    *,
    finish_reason: str | None = "stop",
    usage: dict[str, int] | None = None,
) -> dict[str, Any]:
    """Non-streaming completion as the backend serializes it."""
    body: dict[str, Any] = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1,
        "model": TEST_MODEL,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
        ],
    }
    if usage is not None:
        body["usage"] = usage
    return body


def sse_frame(content: str | None = None, finish_reason: str | None = None) -> str:
    """One ``data:`` line carrying a delta."""
    delta: dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    chunk = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1,
        "model": TEST_MODEL,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    return f"data: {json.dumps(chunk)}"


def sse_body(frames: list[str]) -> bytes:
    """Encode frames as an event-stream body."""
    return "".join(f"{frame}\n\n" for frame in frames).encode()


def sse_frames(*pieces: str, finish_reason: str = "stop") -> list[str]:
    """Frames streaming *pieces*, a finishing frame, then the terminator."""
    frames = [sse_frame(p) for p in pieces]
    frames.append(sse_frame(finish_reason=finish_reason))
    frames.append("data: [DONE]")
    return frames


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_generator(
    backend: FakeBackend,
) -> Callable[..., OllamaContentGenerator]:
    """Build a generator wired to the fake backend."""

    def _make(**config_overrides: Any) -> OllamaContentGenerator:
        cfg = Config(
            base_url=config_overrides.pop("base_url", BASE_URL + "/"),
            model=config_overrides.pop("model", TEST_MODEL),
            **config_overrides,
        )
        client = httpx.AsyncClient(transport=backend.transport())
        return OllamaContentGenerator(cfg, client=client)

    return _make


@pytest.fixture
def list_files_decl() -> FunctionDeclaration:
    return FunctionDeclaration(
        name="list_files",
        description="List files in a directory.",
        parameters={
            "type": "object",
            "properties": {
                "dir": {"type": "string", "description": "Directory to list."},
                "recursive": {"type": "boolean", "description": "Descend."},
            },
            "required": ["dir"],
        },
    )


@pytest.fixture
def read_file_decl() -> FunctionDeclaration:
    return FunctionDeclaration(
        name="read_file",
        description="Read a file.",
        parameters={
            "type": "object",
            "properties": {"file_path": {"type": "string"}},
            "required": ["file_path"],
        },
    )


@pytest.fixture
def tools(
    list_files_decl: FunctionDeclaration, read_file_decl: FunctionDeclaration
) -> list[Tool]:
    return [Tool(function_declarations=(list_files_decl, read_file_decl))]


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_backend_env(monkeypatch):
    """Clear OLLAMA_* and debug toggles so tests see library defaults."""
    for key in list(os.environ.keys()):
        if key.startswith("OLLAMA_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("TOOLSHIM_DEBUG", raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
