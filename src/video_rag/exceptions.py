"""Error taxonomy for the video transcript Q&A pipeline.

Services wrap provider exceptions into these types; the ingestion and
retrieval pipelines catch them at their boundary.
"""


class VideoRAGError(Exception):
    """Base class for every error raised by the pipeline."""


class InvalidInputError(VideoRAGError):
    """Bad URL, unextractable video identifier or unusable transcript."""


class TranscriptUnavailableError(InvalidInputError):
    """The transcript source has no transcript for the requested video."""

    def __init__(self, video_id: str, status_code: int):
        super().__init__(
            f"No transcript available for video {video_id} (HTTP {status_code})"
        )
        self.video_id = video_id
        self.status_code = status_code


class TranscriptSourceError(VideoRAGError):
    """The transcript source could not be reached."""


class EmptyInputError(InvalidInputError):
    """Text to segment is empty or whitespace-only."""


class InvalidConfigurationError(VideoRAGError):
    """Segmentation settings that cannot make progress."""


class EmbeddingProviderError(VideoRAGError):
    """An embedding batch failed.

    Attributes:
        batch_index: Zero-based index of the failing batch.
        completed: Vectors of the batches that succeeded before the failure,
            in input order.
    """

    def __init__(
        self,
        message: str,
        batch_index: int = 0,
        completed: list[list[float]] | None = None,
    ):
        super().__init__(message)
        self.batch_index = batch_index
        self.completed = completed or []


class VectorStoreError(VideoRAGError):
    """A vector index operation failed.

    Attributes:
        failed_batch: Zero-based index of the first failing upsert batch,
            or None for query failures.
        succeeded_count: Records durably written before the failure.
    """

    def __init__(
        self,
        message: str,
        failed_batch: int | None = None,
        succeeded_count: int = 0,
    ):
        super().__init__(message)
        self.failed_batch = failed_batch
        self.succeeded_count = succeeded_count


class DimensionMismatchError(VectorStoreError):
    """Query vector length differs from the index dimensionality."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected vector of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class CompletionProviderError(VideoRAGError):
    """The language model provider failed to produce an answer."""
