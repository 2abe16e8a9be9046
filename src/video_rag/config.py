"""Configuration module for the video transcript Q&A pipeline."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()


class VideoRAGConfig(BaseModel):
    """Configuration for the video transcript Q&A pipeline.

    This configuration class manages all settings for transcript fetching,
    segmentation, embedding, vector storage and answer synthesis. Every
    client component receives an instance in its constructor, and all settings
    can be overridden via environment variables.
    """

    # Transcript source settings
    transcript_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "TRANSCRIPT_BASE_URL",
            "https://deserving-harmony-9f5ca04daf.strapiapp.com/utilai/yt-transcript",
        )
    )
    transcript_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("TRANSCRIPT_TIMEOUT_SECONDS", "30"))
    )

    # Segmentation settings (character-based)
    chunk_size: int = Field(
        default_factory=lambda: int(os.getenv("CHUNK_SIZE", "4000"))
    )
    chunk_overlap: int = Field(
        default_factory=lambda: int(os.getenv("CHUNK_OVERLAP", "500"))
    )

    # Embedding settings
    embedding_provider: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_PROVIDER", "openai")
    )
    embedding_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_BASE_URL", "https://api.openai.com/v1"
        )
    )
    embedding_api_key: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_API_KEY", "")
    )
    embedding_model: str = Field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_MODEL_CHOICE", "text-embedding-3-large"
        )
    )
    embedding_dimensions: int = Field(
        default_factory=lambda: int(os.getenv("EMBEDDING_DIMENSIONS", "3072"))
    )
    embedding_batch_size: int = Field(
        default_factory=lambda: int(os.getenv("EMBEDDING_BATCH_SIZE", "5"))
    )

    # Vector store settings (Supabase + pgvector)
    supabase_url: str = Field(default_factory=lambda: os.getenv("SUPABASE_URL", ""))
    supabase_key: str = Field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_KEY", "")
    )
    vector_table: str = Field(
        default_factory=lambda: os.getenv("VECTOR_TABLE", "yt")
    )
    vector_match_function: str = Field(
        default_factory=lambda: os.getenv("VECTOR_MATCH_FUNCTION", "match_yt_chunks")
    )
    upsert_batch_size: int = Field(
        default_factory=lambda: int(os.getenv("UPSERT_BATCH_SIZE", "100"))
    )
    top_k: int = Field(default_factory=lambda: int(os.getenv("TOP_K", "5")))

    # Completion settings
    llm_model: str = Field(
        default_factory=lambda: os.getenv("LLM_CHOICE", "grok-3-mini-fast")
    )
    llm_base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL", "https://api.x.ai/v1")
    )
    llm_api_key: str = Field(default_factory=lambda: os.getenv("LLM_API_KEY", ""))
    llm_temperature: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.7"))
    )
    llm_max_tokens: int = Field(
        default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "1000"))
    )


def get_config() -> VideoRAGConfig:
    """Get validated configuration instance.

    Returns:
        VideoRAGConfig: Validated configuration object with all settings.

    Raises:
        ValidationError: If environment variables hold values of the wrong type.
    """
    return VideoRAGConfig()
