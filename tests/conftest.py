"""Shared fixtures: test configuration and in-memory provider fakes."""

from types import SimpleNamespace

import pytest

from src.video_rag.config import VideoRAGConfig
from tests.fakes import DIMENSIONS, FakeEmbeddingsAPI, FakeSupabaseClient


@pytest.fixture
def config() -> VideoRAGConfig:
    """Create test configuration with small sizes."""
    return VideoRAGConfig(
        transcript_base_url="https://transcripts.test/yt-transcript",
        chunk_size=200,
        chunk_overlap=40,
        embedding_provider="openai",
        embedding_base_url="https://api.openai.com/v1",
        embedding_api_key="test_api_key",
        embedding_model="text-embedding-3-large",
        embedding_dimensions=DIMENSIONS,
        embedding_batch_size=5,
        supabase_url="https://test.supabase.co",
        supabase_key="test_key",
        vector_table="yt",
        vector_match_function="match_yt_chunks",
        upsert_batch_size=100,
        top_k=5,
        llm_model="grok-3-mini-fast",
        llm_base_url="https://api.x.ai/v1",
        llm_api_key="test_llm_key",
        llm_temperature=0.7,
        llm_max_tokens=1000,
    )


@pytest.fixture
def fake_supabase() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def fake_embeddings() -> FakeEmbeddingsAPI:
    return FakeEmbeddingsAPI()


@pytest.fixture
def embedding_client(fake_embeddings: FakeEmbeddingsAPI) -> SimpleNamespace:
    """Object shaped like AsyncOpenAI exposing only ``embeddings``."""
    return SimpleNamespace(embeddings=fake_embeddings)


@pytest.fixture
def transcript_text() -> str:
    """Multi-paragraph transcript long enough for several chunks."""
    paragraphs = []
    for p in range(4):
        sentences = [
            f"In part {p} the speaker explains idea number {s} about gradient descent."
            for s in range(5)
        ]
        paragraphs.append(" ".join(sentences))
    return "\n\n".join(paragraphs)
