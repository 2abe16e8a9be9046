"""Transcript service for resolving video URLs and fetching plain-text captions."""

import re
from urllib.parse import parse_qs, urlparse

import httpx

from src.utils.clients import create_http_client
from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .exceptions import (
    EmptyInputError,
    InvalidInputError,
    TranscriptSourceError,
    TranscriptUnavailableError,
)

logger = get_logger(__name__)

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")
YOUTUBE_HOSTS = ("youtube.com", "youtube-nocookie.com")
YOUTUBE_SUBDOMAINS = tuple(f".{host}" for host in YOUTUBE_HOSTS)
PATH_PREFIXES = ("/shorts/", "/embed/", "/live/", "/v/")


def extract_video_id(url: str) -> str:
    """Extract the YouTube video ID from a URL or a bare ID.

    Args:
        url: Watch URL, short link, shorts/embed/live URL, or an 11-character ID.

    Returns:
        The video ID.

    Raises:
        InvalidInputError: If no video ID can be found.

    Examples:
        >>> extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        "dQw4w9WgXcQ"
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ?t=42")
        "dQw4w9WgXcQ"
    """
    candidate = (url or "").strip()
    if VIDEO_ID_PATTERN.match(candidate):
        return candidate

    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    video_id: str | None = None

    if host == "youtu.be":
        video_id = parsed.path.lstrip("/").split("/")[0]
    elif host in YOUTUBE_HOSTS or host.endswith(YOUTUBE_SUBDOMAINS):
        if parsed.path == "/watch":
            video_id = parse_qs(parsed.query).get("v", [None])[0]
        else:
            for prefix in PATH_PREFIXES:
                if parsed.path.startswith(prefix):
                    video_id = parsed.path[len(prefix) :].split("/")[0]
                    break

    if not video_id or not VIDEO_ID_PATTERN.match(video_id):
        raise InvalidInputError(f"Invalid YouTube URL: {url!r}")

    return video_id


class TranscriptService:
    """Service for fetching transcripts from the plain-text transcript source.

    The source answers ``GET {base_url}/{video_id}`` with the caption text, or
    with an HTTP error status when the video has no transcript.
    """

    def __init__(
        self, config: VideoRAGConfig, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize transcript service with configuration.

        Args:
            config: Configuration object with the transcript source URL.
            http_client: Optional shared HTTP client.
        """
        self.config = config
        self.http_client = http_client or create_http_client(config)
        logger.info(
            "transcript_service_initialized",
            base_url=config.transcript_base_url,
        )

    async def fetch_transcript(self, video_id: str) -> str:
        """Fetch the plain-text transcript of a video.

        Args:
            video_id: YouTube video ID.

        Returns:
            Transcript text.

        Raises:
            TranscriptUnavailableError: If the source answers with an error status.
            TranscriptSourceError: If the source cannot be reached.
            EmptyInputError: If the transcript body is empty.
        """
        url = f"{self.config.transcript_base_url.rstrip('/')}/{video_id}"
        logger.info("fetching_transcript", video_id=video_id)

        try:
            response = await self.http_client.get(url)
        except httpx.HTTPError as e:
            logger.exception(
                "transcript_fetch_error",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise TranscriptSourceError(f"Failed to fetch transcript: {e}") from e

        if response.is_error:
            logger.warning(
                "transcript_unavailable",
                video_id=video_id,
                status_code=response.status_code,
            )
            raise TranscriptUnavailableError(video_id, response.status_code)

        text = response.text
        if not text.strip():
            logger.warning("transcript_empty", video_id=video_id)
            raise EmptyInputError(f"Transcript for video {video_id} is empty")

        logger.info("transcript_fetched", video_id=video_id, length=len(text))
        return text

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.http_client.aclose()
