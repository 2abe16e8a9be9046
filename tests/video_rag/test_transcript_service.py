"""Unit tests for transcript service and video ID extraction."""

import httpx
import pytest

from src.video_rag.config import VideoRAGConfig
from src.video_rag.exceptions import (
    EmptyInputError,
    InvalidInputError,
    TranscriptSourceError,
    TranscriptUnavailableError,
)
from src.video_rag.transcript_service import TranscriptService, extract_video_id


@pytest.mark.unit
class TestExtractVideoId:
    """Test suite for extract_video_id."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
            "https://m.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ?si=abc",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/live/dQw4w9WgXcQ?feature=share",
            "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ",
            "dQw4w9WgXcQ",
            "  https://www.youtube.com/watch?v=dQw4w9WgXcQ  ",
        ],
    )
    def test_supported_formats(self, url: str) -> None:
        """Test every supported URL shape yields the video ID."""
        assert extract_video_id(url) == "dQw4w9WgXcQ"

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "not a url",
            "https://www.youtube.com/watch",
            "https://www.youtube.com/watch?v=short",
            "https://vimeo.com/123456789",
            "https://evil-youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com.example.org/watch?v=dQw4w9WgXcQ",
            "https://notyoutu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/channel/UCxxxxxxxxxxxxxxxxxxxxxx",
        ],
    )
    def test_invalid_urls_rejected(self, url: str) -> None:
        """Test URLs without a recognizable video ID raise InvalidInputError."""
        with pytest.raises(InvalidInputError, match="Invalid YouTube URL"):
            extract_video_id(url)


@pytest.mark.unit
class TestTranscriptService:
    """Test suite for TranscriptService class."""

    def make_service(self, config: VideoRAGConfig, handler) -> TranscriptService:
        """Create a service whose HTTP client is served by handler."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return TranscriptService(config, http_client=client)

    @pytest.mark.asyncio
    async def test_fetch_transcript_success(self, config: VideoRAGConfig) -> None:
        """Test transcript text is fetched from base URL plus video ID."""
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text="Hello and welcome to the lecture.")

        service = self.make_service(config, handler)
        text = await service.fetch_transcript("dQw4w9WgXcQ")

        assert text == "Hello and welcome to the lecture."
        assert requested == ["https://transcripts.test/yt-transcript/dQw4w9WgXcQ"]
        await service.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 404, 500])
    async def test_fetch_transcript_error_status(
        self, config: VideoRAGConfig, status_code: int
    ) -> None:
        """Test error statuses mean the transcript is unavailable."""
        service = self.make_service(
            config, lambda request: httpx.Response(status_code, text="Not Found")
        )

        with pytest.raises(TranscriptUnavailableError) as exc_info:
            await service.fetch_transcript("dQw4w9WgXcQ")

        assert exc_info.value.status_code == status_code
        assert isinstance(exc_info.value, InvalidInputError)

    @pytest.mark.asyncio
    async def test_fetch_transcript_connection_error(self, config: VideoRAGConfig) -> None:
        """Test transport failures raise TranscriptSourceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = self.make_service(config, handler)

        with pytest.raises(TranscriptSourceError, match="connection refused"):
            await service.fetch_transcript("dQw4w9WgXcQ")

    @pytest.mark.asyncio
    async def test_fetch_transcript_empty_body(self, config: VideoRAGConfig) -> None:
        """Test an empty transcript body is rejected."""
        service = self.make_service(config, lambda request: httpx.Response(200, text="  \n"))

        with pytest.raises(EmptyInputError):
            await service.fetch_transcript("dQw4w9WgXcQ")
