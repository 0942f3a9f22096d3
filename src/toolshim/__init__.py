"""toolshim: prompt-emulated function calling for local chat models.

Public API:
    - OllamaContentGenerator: content generator over a local Ollama server
    - Config: backend configuration
    - extract_tool_call(): pure tool-call extraction and validation
    - inject_tool_instructions(): system-prompt tool catalog
    - Content, Part, Tool, FunctionDeclaration, ...: request/response types
"""

from __future__ import annotations

import logging

from toolshim.config import Config
from toolshim.errors import (
    APIError,
    ConfigurationError,
    RateLimitError,
    RequestAbortedError,
    ToolshimError,
    UnsupportedOperationError,
)
from toolshim.instructions import inject_tool_instructions
from toolshim.providers.base import ContentGenerator
from toolshim.providers.ollama import OllamaContentGenerator
from toolshim.toolcall import ParsedToolCall, extract_tool_call
from toolshim.types import (
    Blob,
    Candidate,
    Content,
    CountTokensResponse,
    EmbedContentRequest,
    FileData,
    FinishReason,
    FunctionCall,
    FunctionDeclaration,
    FunctionResponse,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
    Tool,
    UsageMetadata,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("toolshim")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("toolshim").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "Blob",
    "Candidate",
    "Config",
    "ConfigurationError",
    "Content",
    "ContentGenerator",
    "CountTokensResponse",
    "EmbedContentRequest",
    "FileData",
    "FinishReason",
    "FunctionCall",
    "FunctionDeclaration",
    "FunctionResponse",
    "GenerateContentConfig",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "OllamaContentGenerator",
    "ParsedToolCall",
    "Part",
    "RateLimitError",
    "RequestAbortedError",
    "Tool",
    "ToolshimError",
    "UnsupportedOperationError",
    "UsageMetadata",
    "extract_tool_call",
    "inject_tool_instructions",
]
