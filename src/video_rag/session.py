"""Session facade: the only integration surface the UI layer talks to."""

from collections.abc import AsyncIterator

from src.utils.logging import get_logger

from .config import VideoRAGConfig, get_config
from .embedding_service import EmbeddingService
from .exceptions import VideoRAGError
from .pipeline import IngestionPipeline
from .retrieval import RetrievalPipeline
from .schemas import (
    ConversationTurn,
    IngestionProgress,
    IngestionStatus,
    Role,
)
from .storage_service import StorageService
from .transcript_service import TranscriptService, extract_video_id

logger = get_logger(__name__)

NO_VIDEO_MESSAGE = "Please load a video before asking questions about it."


class VideoQASession:
    """One user's workflow: load a video, then ask questions about it.

    The session holds the active video and the append-only conversation. The
    UI observes ingestion progress and conversation turns; it never talks to
    the providers directly.
    """

    def __init__(
        self,
        config: VideoRAGConfig | None = None,
        transcript_service: TranscriptService | None = None,
        ingestion_pipeline: IngestionPipeline | None = None,
        retrieval_pipeline: RetrievalPipeline | None = None,
    ):
        """Initialize session, sharing embedding and storage clients between pipelines.

        Args:
            config: Configuration object. If None, loads from environment.
            transcript_service: Transcript client (built from config if omitted).
            ingestion_pipeline: Ingestion pipeline (built from config if omitted).
            retrieval_pipeline: Retrieval pipeline (built from config if omitted).
        """
        self.config = config or get_config()
        self.transcript_service = transcript_service or TranscriptService(self.config)

        if ingestion_pipeline is None or retrieval_pipeline is None:
            embedding_service = EmbeddingService(self.config)
            storage_service = StorageService(self.config)
            ingestion_pipeline = ingestion_pipeline or IngestionPipeline(
                self.config,
                embedding_service=embedding_service,
                storage_service=storage_service,
            )
            retrieval_pipeline = retrieval_pipeline or RetrievalPipeline(
                self.config,
                embedding_service=embedding_service,
                storage_service=storage_service,
            )

        self.ingestion_pipeline = ingestion_pipeline
        self.retrieval_pipeline = retrieval_pipeline
        self.active_video_id: str | None = None
        self.conversation: list[ConversationTurn] = []

    async def start_ingestion(self, url: str) -> AsyncIterator[IngestionProgress]:
        """Load a video: fetch its transcript and ingest it.

        The video becomes the active one once ingestion completes. URL and
        transcript failures are reported as a single failed progress item.

        Args:
            url: Video URL submitted by the user.

        Yields:
            IngestionProgress snapshots, ending with a terminal one.
        """
        logger.info("session_ingestion_requested", url=url)

        try:
            video_id = extract_video_id(url)
            transcript = await self.transcript_service.fetch_transcript(video_id)
        except VideoRAGError as e:
            logger.warning(
                "session_ingestion_rejected",
                url=url,
                error_type=type(e).__name__,
                error=str(e),
            )
            yield IngestionProgress(
                video_id="",
                status=IngestionStatus.FAILED,
                error=str(e),
            )
            return

        async for progress in self.ingestion_pipeline.ingest(video_id, transcript, url):
            if progress.status == IngestionStatus.COMPLETED:
                self.active_video_id = video_id
                self.conversation = []
            yield progress

    async def ask_question(self, query: str) -> ConversationTurn:
        """Ask a question about the active video.

        Appends the user turn, then the assistant turn, to the conversation.

        Args:
            query: The user's question.

        Returns:
            The assistant turn.
        """
        self.conversation.append(ConversationTurn(role=Role.USER, content=query))

        if self.active_video_id is None:
            turn = ConversationTurn(
                role=Role.ASSISTANT,
                content=NO_VIDEO_MESSAGE,
                is_error=True,
            )
        else:
            turn = await self.retrieval_pipeline.answer(self.active_video_id, query)

        self.conversation.append(turn)
        return turn

    async def aclose(self) -> None:
        """Release network resources held by the session."""
        await self.transcript_service.aclose()
