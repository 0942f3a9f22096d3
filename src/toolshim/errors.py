"""Exception hierarchy for toolshim."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class ToolshimError(Exception):
    """Base exception for all toolshim errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ToolshimError):
    """Configuration or request validation failed."""


class UnsupportedOperationError(ToolshimError):
    """The backend has no equivalent for the requested operation."""


class RequestAbortedError(ToolshimError):
    """The caller's abort signal fired before a response was produced."""


class APIError(ToolshimError):
    """Backend call failed.

    Retry metadata is attached for the surrounding agent loop; this layer
    never retries on its own.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
