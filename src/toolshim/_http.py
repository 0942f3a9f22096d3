"""Small HTTP-related constants shared across toolshim.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Status codes the surrounding agent loop may safely retry.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"

SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"
