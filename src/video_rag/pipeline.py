"""Ingestion pipeline: transcript text to persisted, queryable vectors."""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator

from src.utils.logging import get_logger

from .chunking_service import ChunkingService
from .config import VideoRAGConfig, get_config
from .embedding_service import EmbeddingService
from .schemas import (
    EmbeddedChunk,
    IngestionProgress,
    IngestionStatus,
    chunk_identifier,
)
from .storage_service import StorageService

logger = get_logger(__name__)


class IngestionPipeline:
    """Orchestrates segmentation, embedding and storage for one video.

    A run moves through ``segmenting -> embedding (batch i of N) ->
    upserting -> completed`` and ends in ``failed`` if any step raises.
    Progress snapshots are yielded as the run advances. Runs for the same
    video are serialized; runs for different videos may overlap because
    their record identifiers never collide.
    """

    def __init__(
        self,
        config: VideoRAGConfig | None = None,
        chunking_service: ChunkingService | None = None,
        embedding_service: EmbeddingService | None = None,
        storage_service: StorageService | None = None,
    ):
        """Initialize pipeline with all required services.

        Args:
            config: Configuration object. If None, loads from environment.
            chunking_service: Segmenter (built from config if omitted).
            embedding_service: Embedding client (built from config if omitted).
            storage_service: Vector store client (built from config if omitted).
        """
        self.config = config or get_config()
        self.chunking_service = chunking_service or ChunkingService(self.config)
        self.embedding_service = embedding_service or EmbeddingService(self.config)
        self.storage_service = storage_service or StorageService(self.config)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: defaultdict[str, int] = defaultdict(int)

        logger.info(
            "ingestion_pipeline_initialized",
            embedding_batch_size=self.config.embedding_batch_size,
            upsert_batch_size=self.config.upsert_batch_size,
        )

    async def ingest(
        self,
        video_id: str,
        transcript_text: str,
        source_url: str = "",
    ) -> AsyncIterator[IngestionProgress]:
        """Ingest one transcript, yielding progress after every step.

        The last item yielded is always terminal (completed or failed).
        Failures are reported through that item, never raised. Nothing is
        retried: the caller resubmits the whole video, and the deterministic
        record identifiers make the resubmission overwrite earlier records.

        Args:
            video_id: Video the transcript belongs to.
            transcript_text: Full transcript text.
            source_url: URL the user submitted, stored as metadata.

        Yields:
            IngestionProgress snapshots.
        """
        lock = self._locks.setdefault(video_id, asyncio.Lock())
        self._lock_users[video_id] += 1
        try:
            async with lock:
                progress = IngestionProgress(video_id=video_id)
                async for snapshot in self._run(progress, transcript_text, source_url):
                    yield snapshot
        finally:
            self._lock_users[video_id] -= 1
            if self._lock_users[video_id] == 0:
                # No run holds or waits for this lock any more
                del self._lock_users[video_id]
                del self._locks[video_id]

    async def _run(
        self,
        progress: IngestionProgress,
        transcript_text: str,
        source_url: str,
    ) -> AsyncIterator[IngestionProgress]:
        video_id = progress.video_id
        logger.info("ingestion_started", video_id=video_id)

        try:
            # 1. Segment the whole transcript up front
            progress.status = IngestionStatus.SEGMENTING
            yield progress.model_copy()

            chunks = self.chunking_service.segment(transcript_text)
            batch_size = self.config.embedding_batch_size
            progress.total_chunks = len(chunks)
            progress.total_batches = (len(chunks) + batch_size - 1) // batch_size

            # 2. Embed in sub-batches, reporting after each one
            progress.status = IngestionStatus.EMBEDDING
            progress.current_batch = 1
            yield progress.model_copy()

            embedded: list[EmbeddedChunk] = []
            for i in range(0, len(chunks), batch_size):
                batch = chunks[i : i + batch_size]
                vectors = await self.embedding_service.embed_batch(
                    [chunk.text for chunk in batch], batch_size=batch_size
                )

                embedded.extend(
                    EmbeddedChunk(
                        **chunk.model_dump(),
                        vector=vector,
                        identifier=chunk_identifier(video_id, chunk.sequence_index),
                    )
                    for chunk, vector in zip(batch, vectors, strict=True)
                )

                progress.processed_chunks = len(embedded)
                progress.current_batch = i // batch_size + 1
                yield progress.model_copy()

            # 3. Persist the full embedded set, then drop leftovers of longer runs
            progress.status = IngestionStatus.UPSERTING
            yield progress.model_copy()

            summary = await self.storage_service.upsert(embedded, video_id, source_url)
            await self.storage_service.delete_stale(video_id, keep_count=len(embedded))

        except Exception as e:
            logger.exception(
                "ingestion_failed",
                video_id=video_id,
                status=progress.status.value,
                processed_chunks=progress.processed_chunks,
                error_type=type(e).__name__,
            )
            progress.status = IngestionStatus.FAILED
            progress.error = str(e)
            yield progress.model_copy()
            return

        progress.status = IngestionStatus.COMPLETED
        logger.info(
            "ingestion_completed",
            video_id=video_id,
            chunks=progress.total_chunks,
            upsert_batches=summary.batch_count,
        )
        yield progress.model_copy()
