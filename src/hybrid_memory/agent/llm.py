"""LLM initialisation — single place to configure chat models."""

from __future__ import annotations

from langchain_openai import ChatOpenAI

from hybrid_memory.config import Settings, settings


def get_llm(config: Settings = settings, *, temperature: float | None = None) -> ChatOpenAI:
    """Return the chat model driving the agent.

    Streaming is enabled so that LangGraph's ``messages`` stream mode
    yields tokens as they arrive.
    """
    return ChatOpenAI(
        model=config.chat_model,
        temperature=config.chat_temperature if temperature is None else temperature,
        api_key=config.openai_api_key,
        streaming=True,
    )


def get_rewrite_llm(config: Settings = settings) -> ChatOpenAI:
    """Return the small, deterministic model used by ``rewrite_query``."""
    return ChatOpenAI(
        model=config.rewrite_model,
        temperature=0.0,
        max_tokens=config.rewrite_max_tokens,
        api_key=config.openai_api_key,
    )
