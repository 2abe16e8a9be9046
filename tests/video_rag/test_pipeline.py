"""Unit tests for the ingestion pipeline."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.video_rag.chunking_service import ChunkingService
from src.video_rag.config import VideoRAGConfig
from src.video_rag.embedding_service import EmbeddingService
from src.video_rag.pipeline import IngestionPipeline
from src.video_rag.schemas import IngestionProgress, IngestionStatus
from src.video_rag.storage_service import StorageService
from tests.fakes import FakeEmbeddingsAPI, FakeSupabaseClient


async def collect(stream) -> list[IngestionProgress]:
    return [progress async for progress in stream]


@pytest.mark.unit
class TestIngestionPipeline:
    """Test suite for IngestionPipeline class."""

    @pytest.fixture
    def pipeline(
        self,
        config: VideoRAGConfig,
        embedding_client: SimpleNamespace,
        fake_supabase: FakeSupabaseClient,
    ) -> IngestionPipeline:
        """Create pipeline wired to the in-memory provider fakes."""
        return IngestionPipeline(
            config,
            chunking_service=ChunkingService(config),
            embedding_service=EmbeddingService(config, client=embedding_client),
            storage_service=StorageService(config, client=fake_supabase),
        )

    @pytest.mark.asyncio
    async def test_progress_sequence(
        self, pipeline: IngestionPipeline, config: VideoRAGConfig, transcript_text: str
    ) -> None:
        """Test statuses advance segmenting, embedding, upserting, completed."""
        expected_chunks = len(ChunkingService(config).segment(transcript_text))
        expected_batches = -(-expected_chunks // config.embedding_batch_size)

        updates = await collect(pipeline.ingest("vid", transcript_text))

        assert updates[0].status == IngestionStatus.SEGMENTING
        assert updates[1].status == IngestionStatus.EMBEDDING
        assert updates[1].processed_chunks == 0
        assert updates[-2].status == IngestionStatus.UPSERTING
        assert updates[-1].status == IngestionStatus.COMPLETED
        assert updates[-1].error is None

        embedding_updates = [
            u for u in updates[2:] if u.status == IngestionStatus.EMBEDDING
        ]
        assert len(embedding_updates) == expected_batches
        assert [u.current_batch for u in embedding_updates] == list(
            range(1, expected_batches + 1)
        )
        assert all(u.total_batches == expected_batches for u in updates[1:])
        assert updates[-1].processed_chunks == expected_chunks
        assert updates[-1].total_chunks == expected_chunks

    @pytest.mark.asyncio
    async def test_processed_chunks_never_decrease(
        self, pipeline: IngestionPipeline, transcript_text: str
    ) -> None:
        """Test processed count is monotonic and bounded by the total."""
        updates = await collect(pipeline.ingest("vid", transcript_text))

        processed = [u.processed_chunks for u in updates]
        assert processed == sorted(processed)
        assert all(u.processed_chunks <= max(u.total_chunks, 0) for u in updates)

    @pytest.mark.asyncio
    async def test_records_persisted(
        self,
        pipeline: IngestionPipeline,
        fake_supabase: FakeSupabaseClient,
        transcript_text: str,
    ) -> None:
        """Test every chunk is stored under its deterministic identifier."""
        updates = await collect(
            pipeline.ingest("vid", transcript_text, "https://youtu.be/vid")
        )

        total = updates[-1].total_chunks
        rows = fake_supabase.table("yt").rows
        assert set(rows) == {f"chunk-vid-{i}" for i in range(total)}
        assert rows["chunk-vid-0"]["metadata"]["source_url"] == "https://youtu.be/vid"

    @pytest.mark.asyncio
    async def test_reingestion_is_idempotent(
        self,
        pipeline: IngestionPipeline,
        fake_supabase: FakeSupabaseClient,
        transcript_text: str,
    ) -> None:
        """Test ingesting the same transcript twice leaves the same record set."""
        await collect(pipeline.ingest("vid", transcript_text))
        first = dict(fake_supabase.table("yt").rows)

        await collect(pipeline.ingest("vid", transcript_text))
        second = fake_supabase.table("yt").rows

        assert set(second) == set(first)
        assert all(second[key]["embedding"] == first[key]["embedding"] for key in first)

    @pytest.mark.asyncio
    async def test_shorter_transcript_removes_stale_records(
        self,
        pipeline: IngestionPipeline,
        fake_supabase: FakeSupabaseClient,
        transcript_text: str,
    ) -> None:
        """Test re-ingesting a shorter transcript drops records past the new end."""
        await collect(pipeline.ingest("vid", transcript_text))
        updates = await collect(pipeline.ingest("vid", "A single short sentence."))

        assert updates[-1].status == IngestionStatus.COMPLETED
        assert set(fake_supabase.table("yt").rows) == {"chunk-vid-0"}

    @pytest.mark.asyncio
    async def test_embedding_failure_reports_failed(
        self,
        config: VideoRAGConfig,
        fake_supabase: FakeSupabaseClient,
        transcript_text: str,
    ) -> None:
        """Test a provider failure ends the run with a failed item and no upsert."""
        pipeline = IngestionPipeline(
            config,
            embedding_service=EmbeddingService(
                config, client=SimpleNamespace(embeddings=FakeEmbeddingsAPI(fail_on_call=2))
            ),
            storage_service=StorageService(config, client=fake_supabase),
        )

        updates = await collect(pipeline.ingest("vid", transcript_text))

        assert updates[-1].status == IngestionStatus.FAILED
        assert "rate limit exceeded" in updates[-1].error
        assert updates[-1].processed_chunks == config.embedding_batch_size
        assert IngestionStatus.UPSERTING not in {u.status for u in updates}
        assert fake_supabase.table("yt").rows == {}

    @pytest.mark.asyncio
    async def test_empty_transcript_reports_failed(self, pipeline: IngestionPipeline) -> None:
        """Test empty transcripts fail during segmentation."""
        updates = await collect(pipeline.ingest("vid", "   "))

        assert [u.status for u in updates] == [
            IngestionStatus.SEGMENTING,
            IngestionStatus.FAILED,
        ]
        assert updates[-1].error

    @pytest.mark.asyncio
    async def test_storage_failure_reports_failed(
        self, config: VideoRAGConfig, embedding_client: SimpleNamespace, transcript_text: str
    ) -> None:
        """Test upsert failures are reported through the terminal item."""
        storage = MagicMock()
        storage.upsert = AsyncMock(side_effect=Exception("index unavailable"))
        storage.delete_stale = AsyncMock()
        pipeline = IngestionPipeline(
            config,
            embedding_service=EmbeddingService(config, client=embedding_client),
            storage_service=storage,
        )

        updates = await collect(pipeline.ingest("vid", transcript_text))

        assert updates[-2].status == IngestionStatus.UPSERTING
        assert updates[-1].status == IngestionStatus.FAILED
        assert updates[-1].error == "index unavailable"
        storage.delete_stale.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_video_runs_are_serialized(
        self, config: VideoRAGConfig, transcript_text: str
    ) -> None:
        """Test two runs for one video never interleave their embedding calls."""
        events: list[str] = []

        async def slow_embed(texts: list[str], batch_size: int | None = None):
            events.append("start")
            await asyncio.sleep(0.01)
            events.append("end")
            return [[0.0] * config.embedding_dimensions for _ in texts]

        embedding = MagicMock()
        embedding.embed_batch = slow_embed
        storage = MagicMock()
        storage.upsert = AsyncMock()
        storage.delete_stale = AsyncMock()
        pipeline = IngestionPipeline(
            config, embedding_service=embedding, storage_service=storage
        )

        first, second = await asyncio.gather(
            collect(pipeline.ingest("vid", transcript_text)),
            collect(pipeline.ingest("vid", transcript_text)),
        )

        assert first[-1].status == IngestionStatus.COMPLETED
        assert second[-1].status == IngestionStatus.COMPLETED
        # Every call finishes before the next one starts
        assert events == ["start", "end"] * (len(events) // 2)
        assert storage.upsert.await_count == 2
        assert pipeline._locks == {}

    @pytest.mark.asyncio
    async def test_video_locks_released_after_runs(
        self, pipeline: IngestionPipeline, transcript_text: str
    ) -> None:
        """Test finished runs leave no per-video lock behind."""
        for video_id in ("video_a", "video_b", "video_c"):
            updates = await collect(pipeline.ingest(video_id, transcript_text))
            assert updates[-1].status == IngestionStatus.COMPLETED

        await collect(pipeline.ingest("video_d", "   "))

        assert pipeline._locks == {}
        assert pipeline._lock_users == {}
