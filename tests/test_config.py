"""Configuration boundary tests."""

from __future__ import annotations

import pytest

from toolshim.config import DEFAULT_BASE_URL, DEFAULT_MODEL, Config
from toolshim.errors import ConfigurationError

pytestmark = pytest.mark.unit


def test_defaults_target_local_ollama() -> None:
    cfg = Config()
    assert cfg.base_url == DEFAULT_BASE_URL
    assert cfg.model == DEFAULT_MODEL
    assert cfg.debug is False
    assert cfg.chat_completions_url == "http://localhost:11434/v1/chat/completions"


def test_trailing_slash_is_stripped() -> None:
    cfg = Config(base_url="http://gpu-box:11434/", model="chadson")
    assert cfg.base_url == "http://gpu-box:11434"
    assert cfg.chat_completions_url == "http://gpu-box:11434/v1/chat/completions"


def test_values_resolve_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://env-host:9999/")
    monkeypatch.setenv("OLLAMA_MODEL", "chadson")

    cfg = Config()

    assert cfg.base_url == "http://env-host:9999"
    assert cfg.model == "chadson"


def test_explicit_values_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OLLAMA_MODEL", "chadson")
    cfg = Config(model="llama3.1:8b")
    assert cfg.model == "llama3.1:8b"


@pytest.mark.parametrize("flag", ["DEBUG", "TOOLSHIM_DEBUG"])
def test_debug_flag_resolves_from_environment(
    monkeypatch: pytest.MonkeyPatch, flag: str
) -> None:
    monkeypatch.setenv(flag, "1")
    assert Config().debug is True


def test_explicit_debug_overrides_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    assert Config(debug=False).debug is False


@pytest.mark.parametrize("url", ["localhost:11434", "ftp://host", "http://", ""])
def test_invalid_base_url_raises_clear_error(url: str) -> None:
    with pytest.raises(ConfigurationError, match="Invalid backend base URL") as exc:
        Config(base_url=url)
    assert exc.value.hint is not None


def test_blank_model_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="model"):
        Config(model="   ")


def test_non_positive_timeout_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="timeout_s"):
        Config(timeout_s=0)
    assert Config(timeout_s=None).timeout_s is None


def test_config_is_frozen() -> None:
    cfg = Config()
    with pytest.raises(AttributeError):
        cfg.model = "other"  # type: ignore[misc]


def test_repr_is_informative() -> None:
    text = repr(Config(model="chadson"))
    assert "chadson" in text
    assert "localhost:11434" in text
