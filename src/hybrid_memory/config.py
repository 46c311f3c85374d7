"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from hybrid_memory.errors import ConfigurationError

DEFAULT_REALTIME_INSTRUCTIONS = (
    "You are a warm, friendly, and inviting voice assistant. You MUST speak ONLY English. "
    "If spoken to in another language, politely explain in English that you can only "
    "communicate in English. Start every new conversation with a very warm and welcoming tone."
)


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (required at startup)")
    chat_model: str = Field(default="gpt-4o-mini", description="Model driving the chat agent")
    chat_temperature: float = 0.3
    rewrite_model: str = "gpt-4o-mini"
    rewrite_max_tokens: int = 150
    memory_last_messages: int = Field(
        default=10,
        description="Number of thread messages replayed to the model on every turn",
    )

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = Field(
        default=1536,
        description="Vector length requested from (and enforced on) the embedding service",
    )
    embedding_batch_size: int = 100

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "documents"

    # Conversation store
    database_url: str = "sqlite:///./conversations.db"

    # Agent thread memory
    checkpointer: Literal["memory", "sqlite"] = Field(
        default="sqlite",
        description="Where agent threads are checkpointed; \"memory\" is lost on restart",
    )
    checkpoint_path: str = "./checkpoints.db"

    # Ingestion / retrieval
    chunk_size: int = 300
    chunk_overlap: int = 60
    search_top_k: int = 5
    history_limit: int = 20

    # Realtime voice
    realtime_base_url: str = "https://api.openai.com/v1"
    realtime_ws_url: str = "wss://api.openai.com/v1/realtime"
    realtime_model: str = "gpt-4o-mini-realtime-preview-2024-12-17"
    realtime_voice: str = "alloy"
    realtime_instructions: str = DEFAULT_REALTIME_INSTRUCTIONS
    realtime_connect_timeout: float = Field(
        default=10.0,
        description="Seconds allowed for upstream HTTP calls and WebSocket handshakes",
    )

    # Text-to-speech
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"

    # Serving
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def validate_required(self) -> None:
        """Raise :class:`ConfigurationError` when mandatory values are missing.

        Called once at process start; nothing else in the service is fatal.
        """
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(
                f"CHUNK_OVERLAP ({self.chunk_overlap}) must be smaller than "
                f"CHUNK_SIZE ({self.chunk_size})"
            )


# Singleton — import `settings` wherever needed.
settings = Settings()
