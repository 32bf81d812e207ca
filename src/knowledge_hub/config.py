"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local servers)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model used for answer generation")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible chat endpoint. Leave empty to "
            "use OpenAI cloud."
        ),
    )

    llm_temperature: float | None = Field(default=None, description="Unset uses the provider default")
    llm_timeout: float = Field(default=60.0, gt=0, description="Per-request timeout in seconds")
    llm_max_retries: int = Field(default=2, ge=0)

    # Embedding
    embedding_provider: str = Field(default="openai", description="'openai' or 'huggingface'")
    embedding_model: str = "text-embedding-3-large"

    # Chunking
    chunk_max_len: int = Field(default=1200, gt=0)
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Surfaced to operators; the paragraph/sentence chunker does not apply it.",
    )

    # Retrieval / prompting
    search_default_k: int = 8
    chat_context_k: int = 6
    query_max_chars: int = 4000

    # Durable mirror (optional)
    mongodb_uri: str = ""
    mongodb_db: str = ""

    # Logging
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Import `settings` wherever defaults are needed; components take explicit
# arguments so tests never depend on the environment.
settings = Settings()
