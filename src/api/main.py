"""FastAPI application exposing the video Q&A session.

Provides a streaming ingestion endpoint (newline-delimited JSON progress),
a question endpoint returning the assistant turn, and the conversation so far.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from src.utils.logging import get_logger
from src.video_rag.config import get_config
from src.video_rag.schemas import ConversationTurn
from src.video_rag.session import VideoQASession

logger = get_logger(__name__)

# Session initialized in lifespan
session: VideoQASession | None = None


# ==============================================================================
# Lifespan Management
# ==============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI application.

    Handles initialization and cleanup of resources.
    """
    global session

    logger.info("application_startup_started")

    try:
        session = VideoQASession(get_config())
        logger.info("application_startup_completed")

    except Exception:
        logger.exception("application_startup_failed")
        raise

    yield  # Application runs here

    logger.info("application_shutdown_started")

    if session:
        await session.aclose()
        session = None

    logger.info("application_shutdown_completed")


# ==============================================================================
# FastAPI Application Setup
# ==============================================================================

app = FastAPI(
    title="Video Q&A API",
    description="Ask questions about a video from its transcript",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_session() -> VideoQASession:
    """Return the application session.

    Raises:
        HTTPException: 503 if the session has not been initialized.
    """
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")
    return session


# ==============================================================================
# Request Models
# ==============================================================================


class IngestRequest(BaseModel):
    """Request model for the ingestion endpoint."""

    url: str


class AskRequest(BaseModel):
    """Request model for the question endpoint."""

    query: str


# ==============================================================================
# API Endpoints
# ==============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        Health status, timestamp and whether the session is ready.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "session_ready": session is not None,
        "active_video_id": session.active_video_id if session else None,
    }


@app.post("/api/ingest")
async def ingest_endpoint(
    request: IngestRequest,
    qa_session: VideoQASession = Depends(get_session),
):
    """Load a video and stream ingestion progress.

    Returns:
        StreamingResponse with one JSON progress object per line.
    """
    logger.info("ingest_request_started", url=request.url)

    async def stream_progress():
        async for progress in qa_session.start_ingestion(request.url):
            yield progress.model_dump_json().encode("utf-8") + b"\n"

    return StreamingResponse(stream_progress(), media_type="application/x-ndjson")


@app.post("/api/ask", response_model=ConversationTurn)
async def ask_endpoint(
    request: AskRequest,
    qa_session: VideoQASession = Depends(get_session),
) -> ConversationTurn:
    """Answer a question about the active video."""
    if not request.query.strip():
        raise HTTPException(status_code=422, detail="Query must not be empty")

    logger.info("ask_request_started", query_length=len(request.query))
    return await qa_session.ask_question(request.query)


@app.get("/api/conversation", response_model=list[ConversationTurn])
async def conversation_endpoint(
    qa_session: VideoQASession = Depends(get_session),
) -> list[ConversationTurn]:
    """Return the conversation turns so far."""
    return qa_session.conversation
