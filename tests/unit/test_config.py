"""Unit tests for settings validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hybrid_memory.config import Settings
from hybrid_memory.errors import ConfigurationError


def test_missing_api_key_is_fatal() -> None:
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        Settings(openai_api_key="").validate_required()


def test_overlap_must_be_smaller_than_chunk_size() -> None:
    with pytest.raises(ConfigurationError):
        Settings(openai_api_key="sk-test", chunk_size=100, chunk_overlap=100).validate_required()


def test_valid_settings_pass() -> None:
    Settings(openai_api_key="sk-test").validate_required()


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHUNK_SIZE", "500")
    monkeypatch.setenv("SEARCH_TOP_K", "8")
    config = Settings()
    assert config.chunk_size == 500
    assert config.search_top_k == 8


def test_thread_memory_defaults_to_sqlite(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHECKPOINTER", raising=False)
    assert Settings().checkpointer == "sqlite"


def test_unknown_checkpointer_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHECKPOINTER", "redis")
    with pytest.raises(ValidationError):
        Settings()
