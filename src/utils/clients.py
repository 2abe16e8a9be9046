"""Client initialization utilities.

Builds the external service clients (embedding provider, Supabase vector
store, transcript HTTP source) from an explicit configuration object, so
several credentials or environments can coexist in one process.
"""

from httpx import AsyncClient
from openai import AsyncOpenAI
from supabase import Client, create_client

from src.video_rag.config import VideoRAGConfig


def create_embedding_client(config: VideoRAGConfig) -> AsyncOpenAI:
    """Initialize an OpenAI-compatible embedding client for the configured provider.

    Args:
        config: Configuration with embedding provider settings.

    Returns:
        Configured AsyncOpenAI client instance.

    Examples:
        >>> client = create_embedding_client(get_config())
    """
    if config.embedding_provider == "ollama":
        # Ollama doesn't require a real API key
        return AsyncOpenAI(base_url=config.embedding_base_url, api_key="ollama")

    # OpenAI, OpenRouter, or other compatible providers
    return AsyncOpenAI(
        base_url=config.embedding_base_url,
        api_key=config.embedding_api_key,
    )


def create_supabase_client(config: VideoRAGConfig) -> Client:
    """Initialize the Supabase client holding the vector table.

    Args:
        config: Configuration with Supabase credentials.

    Returns:
        Supabase client.

    Raises:
        ValueError: If the Supabase URL or key is missing.
    """
    if not config.supabase_url or not config.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required")

    return create_client(config.supabase_url, config.supabase_key)


def create_http_client(config: VideoRAGConfig) -> AsyncClient:
    """Initialize the HTTP client used for the transcript source."""
    return AsyncClient(timeout=config.transcript_timeout_seconds)
