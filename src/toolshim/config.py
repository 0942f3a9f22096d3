"""Configuration: frozen Config for the local inference backend."""

from __future__ import annotations

from dataclasses import dataclass
import os
from urllib.parse import urlparse

from dotenv import load_dotenv

from toolshim._http import CHAT_COMPLETIONS_PATH
from toolshim.errors import ConfigurationError

load_dotenv()

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "gemma2:27b"
DEFAULT_TIMEOUT_S = 600.0

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(*names: str) -> bool:
    return any(os.environ.get(n, "").strip().lower() in _TRUTHY for n in names)


@dataclass(frozen=True)
class Config:
    """Immutable backend configuration, fixed for a generator's lifetime.

    Unset values resolve from ``OLLAMA_BASE_URL`` and ``OLLAMA_MODEL``, then
    fall back to a local Ollama daemon serving ``gemma2:27b``.

    Example:
        config = Config(model="chadson")
        generator = OllamaContentGenerator(config)
    """

    base_url: str | None = None
    model: str | None = None
    #: Seconds before the HTTP request times out; ``None`` waits forever.
    timeout_s: float | None = DEFAULT_TIMEOUT_S
    #: Log full request/response payloads at DEBUG level.
    debug: bool | None = None

    def __post_init__(self) -> None:
        """Resolve environment defaults and validate configuration."""
        base_url = self.base_url
        if base_url is None:
            base_url = os.environ.get("OLLAMA_BASE_URL") or DEFAULT_BASE_URL
        base_url = base_url.strip().rstrip("/")

        parsed = urlparse(base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigurationError(
                f"Invalid backend base URL: {base_url!r}",
                hint="Use an http(s) URL such as 'http://localhost:11434'.",
            )
        object.__setattr__(self, "base_url", base_url)

        model = self.model
        if model is None:
            model = os.environ.get("OLLAMA_MODEL") or DEFAULT_MODEL
        if not isinstance(model, str) or not model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Set OLLAMA_MODEL or pass Config(model='gemma2:27b').",
            )
        object.__setattr__(self, "model", model.strip())

        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="Pass timeout_s=None to disable the request timeout.",
            )

        if self.debug is None:
            object.__setattr__(self, "debug", _env_flag("TOOLSHIM_DEBUG", "DEBUG"))

    @property
    def chat_completions_url(self) -> str:
        """Absolute URL of the backend's chat-completions endpoint."""
        return f"{self.base_url}{CHAT_COMPLETIONS_PATH}"

    def __str__(self) -> str:
        """Return a developer-friendly representation."""
        return (
            f"Config(base_url={self.base_url!r}, model={self.model!r}, "
            f"timeout_s={self.timeout_s!r}, debug={self.debug})"
        )

    __repr__ = __str__
