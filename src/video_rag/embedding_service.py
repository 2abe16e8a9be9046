"""Embedding service for generating text embeddings via OpenAI-compatible APIs."""

from openai import AsyncOpenAI

from src.utils.clients import create_embedding_client
from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .exceptions import EmbeddingProviderError

logger = get_logger(__name__)


class EmbeddingService:
    """Service for generating text embeddings.

    This service supports multiple embedding providers (OpenAI, Ollama, OpenRouter)
    through OpenAI-compatible APIs. Texts are sent in sequential batches, one
    request per batch, and the returned vectors keep the input order.
    Embeddings are never cached: every call reaches the provider.
    """

    def __init__(self, config: VideoRAGConfig, client: AsyncOpenAI | None = None):
        """Initialize embedding service with configuration.

        Args:
            config: Configuration object with embedding provider settings.
            client: Optional pre-built client (defaults to one built from config).
        """
        self.config = config
        self.client = client or create_embedding_client(config)
        logger.info(
            "embedding_service_initialized",
            provider=config.embedding_provider,
            model=config.embedding_model,
            base_url=config.embedding_base_url,
        )

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Text content to embed.

        Returns:
            Embedding vector as a list of floats.

        Raises:
            EmbeddingProviderError: If embedding generation fails.
        """
        embeddings = await self.embed_batch([text], batch_size=1)
        return embeddings[0]

    async def embed_batch(
        self, texts: list[str], batch_size: int | None = None
    ) -> list[list[float]]:
        """Generate embeddings for multiple texts with batching.

        Batches are submitted one after another; batch i+1 is not sent until
        batch i has returned.

        Args:
            texts: List of text strings to embed.
            batch_size: Maximum texts per provider request
                (default: config.embedding_batch_size).

        Returns:
            List of embedding vectors in the same order as input texts.

        Raises:
            EmbeddingProviderError: If any batch fails. The error carries the
                failing batch index and the vectors of the preceding batches.
        """
        if batch_size is None:
            batch_size = self.config.embedding_batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        logger.info(
            "batch_embedding_started",
            count=len(texts),
            batch_size=batch_size,
        )

        embeddings: list[list[float]] = []

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            batch_index = i // batch_size

            try:
                response = await self.client.embeddings.create(
                    input=batch,
                    model=self.config.embedding_model,
                    encoding_format="float",
                )
                batch_embeddings = [
                    list(item.embedding)
                    for item in sorted(response.data, key=lambda item: item.index)
                ]

            except Exception as e:
                logger.exception(
                    "batch_embedding_failed",
                    batch_num=batch_index + 1,
                    embedded_before_failure=len(embeddings),
                    error_type=type(e).__name__,
                )
                raise EmbeddingProviderError(
                    f"Embedding batch {batch_index + 1} failed: {e}",
                    batch_index=batch_index,
                    completed=embeddings,
                ) from e

            if len(batch_embeddings) != len(batch):
                logger.error(
                    "batch_embedding_count_mismatch",
                    batch_num=batch_index + 1,
                    expected=len(batch),
                    received=len(batch_embeddings),
                )
                raise EmbeddingProviderError(
                    f"Embedding batch {batch_index + 1} returned "
                    f"{len(batch_embeddings)} vectors for {len(batch)} inputs",
                    batch_index=batch_index,
                    completed=embeddings,
                )

            embeddings.extend(batch_embeddings)
            logger.debug(
                "batch_completed",
                batch_num=batch_index + 1,
                count=len(batch),
            )

        logger.info(
            "batch_embedding_completed",
            total_embeddings=len(embeddings),
        )
        return embeddings
