"""Backend contract and wire models."""

from .base import ContentGenerator
from .models import BackendMessage, ChatCompletion, ChatCompletionChunk

__all__ = [
    "BackendMessage",
    "ChatCompletion",
    "ChatCompletionChunk",
    "ContentGenerator",
]
