"""Retrieval and synthesis pipeline: user question to assistant conversation turn."""

from src.utils.logging import get_logger

from .completion_service import CompletionService
from .config import VideoRAGConfig, get_config
from .embedding_service import EmbeddingService
from .schemas import ConversationTurn, Role
from .storage_service import StorageService

logger = get_logger(__name__)

APOLOGY_MESSAGE = (
    "Sorry, I couldn't answer that question right now. Please try again in a moment."
)


class RetrievalPipeline:
    """Answers questions about one video from its stored transcript vectors.

    Each question runs four strictly sequential steps: embed the question,
    query the vector index scoped to the video, synthesize an answer from the
    matches, and wrap it as an assistant turn. A question with no matching
    passages still goes through synthesis, which reports that nothing
    relevant was found.
    """

    def __init__(
        self,
        config: VideoRAGConfig | None = None,
        embedding_service: EmbeddingService | None = None,
        storage_service: StorageService | None = None,
        completion_service: CompletionService | None = None,
    ):
        self.config = config or get_config()
        self.embedding_service = embedding_service or EmbeddingService(self.config)
        self.storage_service = storage_service or StorageService(self.config)
        self.completion_service = completion_service or CompletionService(self.config)

    async def answer(self, video_id: str, user_query: str) -> ConversationTurn:
        """Answer a question about a video.

        Args:
            video_id: Video whose transcript should be searched.
            user_query: The user's question.

        Returns:
            Assistant turn with the formatted answer, or an apology turn
            (``is_error=True``) if any step failed.
        """
        logger.info("retrieval_started", video_id=video_id, query_length=len(user_query))

        try:
            query_vector = await self.embedding_service.embed_text(user_query)
            matches = await self.storage_service.query(
                query_vector,
                {"video_id": video_id},
                top_k=self.config.top_k,
            )
            answer = await self.completion_service.format(user_query, matches)

        except Exception as e:
            logger.exception(
                "retrieval_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            return ConversationTurn(
                role=Role.ASSISTANT,
                content=APOLOGY_MESSAGE,
                is_error=True,
            )

        logger.info(
            "retrieval_completed",
            video_id=video_id,
            matches=len(matches),
            top_score=matches[0].score if matches else None,
        )
        return ConversationTurn(role=Role.ASSISTANT, content=answer)
