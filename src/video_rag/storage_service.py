"""Storage service for transcript vectors in a Supabase (pgvector) index."""

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from supabase import Client

from src.utils.clients import create_supabase_client
from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .exceptions import DimensionMismatchError, VectorStoreError
from .schemas import ChunkMetadata, EmbeddedChunk, UpsertSummary, VectorMatch

logger = get_logger(__name__)


class StorageService:
    """Service for storing and querying transcript vectors in Supabase.

    All videos share one table (``config.vector_table``), partitioned by the
    ``video_id`` column and metadata key. Writes are batched upserts keyed on
    the deterministic chunk identifier; reads go through a similarity-match
    RPC that accepts a JSONB metadata filter.
    """

    def __init__(self, config: VideoRAGConfig, client: Client | None = None):
        """Initialize storage service with configuration.

        Args:
            config: Configuration object with Supabase credentials and table names.
            client: Optional pre-built Supabase client.
        """
        self.config = config
        self.client: Client = client or create_supabase_client(config)
        logger.info(
            "storage_service_initialized",
            supabase_url=config.supabase_url,
            table=config.vector_table,
        )

    async def upsert(
        self,
        records: list[EmbeddedChunk],
        video_id: str,
        source_url: str = "",
        batch_size: int | None = None,
    ) -> UpsertSummary:
        """Insert or overwrite chunk vectors in sequential batches.

        Each batch write is acknowledged or fails on its own; the call as a
        whole is not atomic. If batch i fails, batches 0..i-1 stay written.

        Args:
            records: Embedded chunks of one video, in sequence order.
            video_id: Video the records belong to.
            source_url: URL the transcript was ingested from.
            batch_size: Records per write (default: config.upsert_batch_size).

        Returns:
            UpsertSummary with the number of records and batches written.

        Raises:
            VectorStoreError: With the index of the first failing batch and the
                number of records written before it.
            ValueError: If batch_size is not positive.
        """
        if batch_size is None:
            batch_size = self.config.upsert_batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        ingested_at = datetime.now(UTC)
        rows = [self._to_row(record, video_id, source_url, ingested_at) for record in records]
        total_batches = (len(rows) + batch_size - 1) // batch_size

        logger.info(
            "upsert_started",
            video_id=video_id,
            records=len(rows),
            total_batches=total_batches,
        )

        succeeded = 0
        for batch_index in range(total_batches):
            batch = rows[batch_index * batch_size : (batch_index + 1) * batch_size]

            try:
                self.client.table(self.config.vector_table).upsert(
                    batch, on_conflict="id"
                ).execute()

            except Exception as e:
                logger.exception(
                    "upsert_batch_failed",
                    video_id=video_id,
                    batch_num=batch_index + 1,
                    total_batches=total_batches,
                    succeeded_count=succeeded,
                    error_type=type(e).__name__,
                )
                raise VectorStoreError(
                    f"Upsert batch {batch_index + 1} of {total_batches} failed: {e}",
                    failed_batch=batch_index,
                    succeeded_count=succeeded,
                ) from e

            succeeded += len(batch)
            logger.info(
                "upsert_batch_completed",
                video_id=video_id,
                batch_num=batch_index + 1,
                total_batches=total_batches,
            )

        logger.info("upsert_completed", video_id=video_id, records=succeeded)
        return UpsertSummary(succeeded_count=succeeded, batch_count=total_batches)

    def _to_row(
        self,
        record: EmbeddedChunk,
        video_id: str,
        source_url: str,
        ingested_at: datetime,
    ) -> dict[str, Any]:
        """Convert an embedded chunk to a table row."""
        metadata = ChunkMetadata(
            video_id=video_id,
            chunk_index=record.sequence_index,
            text=record.text,
            source_url=source_url,
            ingested_at=ingested_at,
        )
        return {
            "id": record.identifier,
            "video_id": video_id,
            "chunk_index": record.sequence_index,
            "embedding": record.vector,
            "metadata": metadata.model_dump(mode="json"),
        }

    async def query(
        self,
        vector: list[float],
        metadata_filter: dict[str, Any],
        top_k: int | None = None,
    ) -> list[VectorMatch]:
        """Search for the chunks most similar to a vector.

        Results keep the order reported by the index (descending similarity);
        ties are left in provider order.

        Args:
            vector: Query embedding; its length must match config.embedding_dimensions.
            metadata_filter: JSONB metadata filter, e.g. ``{"video_id": "abc"}``.
            top_k: Maximum number of matches (default: config.top_k).

        Returns:
            Typed matches. An empty list means no relevant content.

        Raises:
            DimensionMismatchError: If the vector has the wrong length.
            VectorStoreError: If the provider call fails or returns malformed rows.
            ValueError: If top_k is not positive.
        """
        if len(vector) != self.config.embedding_dimensions:
            logger.warning(
                "vector_search_rejected",
                expected_dim=self.config.embedding_dimensions,
                actual_dim=len(vector),
            )
            raise DimensionMismatchError(self.config.embedding_dimensions, len(vector))

        match_count = self.config.top_k if top_k is None else top_k
        if match_count <= 0:
            raise ValueError(f"top_k must be positive, got {match_count}")

        try:
            response = self.client.rpc(
                self.config.vector_match_function,
                {
                    "query_embedding": vector,
                    "match_count": match_count,
                    "filter": metadata_filter,
                },
            ).execute()

        except Exception as e:
            logger.exception(
                "vector_search_failed",
                filter=metadata_filter,
                error_type=type(e).__name__,
            )
            raise VectorStoreError(f"Vector search failed: {e}") from e

        rows: list[dict[str, Any]] = response.data or []
        try:
            matches = [
                VectorMatch(
                    identifier=row["id"],
                    score=row["similarity"],
                    metadata=ChunkMetadata.model_validate(row["metadata"]),
                )
                for row in rows
            ]
        except (KeyError, TypeError, ValidationError) as e:
            logger.exception("vector_search_malformed_response", rows=len(rows))
            raise VectorStoreError(f"Malformed match returned by vector index: {e}") from e

        logger.info(
            "vector_search_completed",
            results=len(matches),
            match_count=match_count,
            filter=metadata_filter,
        )
        return matches

    async def delete_stale(self, video_id: str, keep_count: int) -> None:
        """Delete records of a video whose chunk index is >= keep_count.

        Used after re-ingesting a video whose new transcript yields fewer
        chunks than the previous run.

        Raises:
            VectorStoreError: If the delete fails.
        """
        try:
            (
                self.client.table(self.config.vector_table)
                .delete()
                .eq("video_id", video_id)
                .gte("chunk_index", keep_count)
                .execute()
            )
            logger.info("stale_records_deleted", video_id=video_id, keep_count=keep_count)

        except Exception as e:
            logger.exception(
                "stale_records_delete_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise VectorStoreError(f"Failed to delete stale records: {e}") from e

    async def delete_video(self, video_id: str) -> None:
        """Delete every record of a video.

        Raises:
            VectorStoreError: If the delete fails.
        """
        try:
            self.client.table(self.config.vector_table).delete().eq(
                "video_id", video_id
            ).execute()
            logger.info("video_records_deleted", video_id=video_id)

        except Exception as e:
            logger.exception(
                "video_records_delete_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise VectorStoreError(f"Failed to delete video records: {e}") from e
