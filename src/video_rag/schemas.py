"""Pydantic schemas for the video transcript Q&A pipeline."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class TranscriptChunk(BaseModel):
    """Contiguous span of transcript text.

    Produced by the segmenter; ``source[start_char:end_char] == text`` for the
    transcript it was cut from.
    """

    text: str = Field(min_length=1)
    sequence_index: int = Field(ge=0)
    start_char: int = 0
    end_char: int = 0


def chunk_identifier(video_id: str, sequence_index: int) -> str:
    """Build the deterministic record key for one chunk of a video."""
    return f"chunk-{video_id}-{sequence_index}"


class EmbeddedChunk(TranscriptChunk):
    """Chunk paired with its embedding vector.

    The identifier only depends on the video and the chunk position, so
    re-ingesting a video overwrites the records written by the previous run.
    """

    vector: list[float]
    identifier: str


class ChunkMetadata(BaseModel):
    """Metadata stored alongside every vector in the index."""

    video_id: str
    chunk_index: int
    text: str
    source_url: str = ""
    ingested_at: datetime | None = None
    type: str = "transcript"


class VectorMatch(BaseModel):
    """Single similarity match returned by the vector index."""

    identifier: str
    score: float
    metadata: ChunkMetadata


class UpsertSummary(BaseModel):
    """Result of a fully successful upsert."""

    succeeded_count: int
    batch_count: int


class IngestionStatus(str, Enum):
    """States of one ingestion run. COMPLETED and FAILED are terminal."""

    IDLE = "idle"
    SEGMENTING = "segmenting"
    EMBEDDING = "embedding"
    UPSERTING = "upserting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionStatus.COMPLETED, IngestionStatus.FAILED)


class IngestionProgress(BaseModel):
    """Snapshot of an ingestion run.

    ``current_batch`` and ``total_batches`` count embedding sub-batches, not
    upsert batches.
    """

    video_id: str
    status: IngestionStatus = IngestionStatus.IDLE
    total_chunks: int = 0
    processed_chunks: int = 0
    current_batch: int = 0
    total_batches: int = 0
    error: str | None = None


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """One message in the chat transcript shown to the user."""

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    is_error: bool = False
