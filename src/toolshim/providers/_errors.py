"""Provider-side error mapping.

Failures are surfaced as APIError with retry metadata attached so the
surrounding agent loop can decide on retries without substring matching.
This layer itself never retries.
"""

from __future__ import annotations

import asyncio

import httpx

from toolshim._http import RETRYABLE_STATUS_CODES
from toolshim.errors import APIError, RateLimitError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        value = getattr(e, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _connect_hint(exc: BaseException, provider: str) -> str | None:
    for e in _walk_exception_chain(exc):
        if isinstance(e, httpx.ConnectError):
            return f"Is the {provider} server running? Check OLLAMA_BASE_URL."
    return None


def status_error(
    status_code: int,
    body: str,
    *,
    provider: str,
    phase: str,
) -> APIError:
    """Build the error for a non-2xx backend response."""
    err_cls: type[APIError] = RateLimitError if status_code == 429 else APIError
    hint = None
    if status_code == 404:
        hint = "Check that the model is pulled on the backend (OLLAMA_MODEL)."
    detail = body.strip()
    return err_cls(
        f"{provider} API error: {status_code} {detail}".rstrip(),
        hint=hint,
        retryable=status_code in RETRYABLE_STATUS_CODES,
        status_code=status_code,
        provider=provider,
        phase=phase,
    )


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
) -> APIError:
    """Map transport exceptions into APIError with stable retry metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    retryable = isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES
    if not retryable:
        for e in _walk_exception_chain(exc):
            if isinstance(e, (httpx.TimeoutException, httpx.TransportError)):
                retryable = True
                break

    msg = message or f"{provider} {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    err_cls: type[APIError] = RateLimitError if status_code == 429 else APIError
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=_connect_hint(exc, provider),
        retryable=retryable,
        status_code=status_code,
        provider=provider,
        phase=phase,
    )
