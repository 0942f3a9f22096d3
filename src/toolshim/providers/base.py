"""Content generator protocol: the contract the agent framework consumes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from toolshim.types import (
        CountTokensResponse,
        EmbedContentRequest,
        GenerateContentRequest,
        GenerateContentResponse,
    )


@runtime_checkable
class ContentGenerator(Protocol):
    """Generate, stream, count tokens, embed."""

    async def generate_content(
        self,
        request: GenerateContentRequest,
        user_prompt_id: str | None = None,
    ) -> GenerateContentResponse:
        """Produce one complete response."""
        ...

    def generate_content_stream(
        self,
        request: GenerateContentRequest,
        user_prompt_id: str | None = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        """Produce partial responses as the backend streams them."""
        ...

    async def count_tokens(self, request: GenerateContentRequest) -> CountTokensResponse:
        """Count (or estimate) the request's tokens."""
        ...

    async def embed_content(self, request: EmbedContentRequest) -> object:
        """Embed the request's contents."""
        ...
