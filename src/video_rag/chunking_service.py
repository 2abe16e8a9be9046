"""Chunking service for overlapping, boundary-aware transcript segmentation."""

import re

from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .exceptions import EmptyInputError, InvalidConfigurationError
from .schemas import TranscriptChunk

logger = get_logger(__name__)

# Sentence end: terminal punctuation, optional closing quotes/brackets, whitespace
SENTENCE_END = re.compile(r"[.!?][\"')\]]*\s")


class ChunkingService:
    """Service for splitting transcript text into overlapping chunks.

    Chunks are cut at the strongest boundary available inside the target
    window: paragraph breaks first, then sentence ends, then line breaks,
    then whitespace between words. A hard character cut is used only when the
    window holds none of those. Consecutive chunks share roughly ``overlap``
    characters so local context survives the chunk boundary.
    """

    def __init__(self, config: VideoRAGConfig):
        """Initialize chunking service with configuration.

        Args:
            config: Configuration object with default chunk size and overlap.
        """
        self.config = config
        logger.info(
            "chunking_service_initialized",
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
        )

    def segment(
        self,
        text: str,
        target_size: int | None = None,
        overlap: int | None = None,
    ) -> list[TranscriptChunk]:
        """Split text into ordered, overlapping chunks.

        Args:
            text: Raw transcript text.
            target_size: Maximum characters per chunk (default: config.chunk_size).
            overlap: Characters repeated from the end of one chunk at the start
                of the next (default: config.chunk_overlap).

        Returns:
            Chunks in source order with sequence_index 0..n-1.

        Raises:
            EmptyInputError: If text is empty or whitespace-only.
            InvalidConfigurationError: If target_size <= overlap or either
                value is out of range.
        """
        size = self.config.chunk_size if target_size is None else target_size
        overlap = self.config.chunk_overlap if overlap is None else overlap

        if size <= 0 or overlap < 0:
            raise InvalidConfigurationError(
                f"chunk size must be positive and overlap non-negative "
                f"(size={size}, overlap={overlap})"
            )
        if size <= overlap:
            raise InvalidConfigurationError(
                f"chunk size ({size}) must be greater than overlap ({overlap})"
            )
        if not text or not text.strip():
            raise EmptyInputError("Cannot segment empty transcript text")

        logger.info(
            "chunking_started",
            text_length=len(text),
            chunk_size=size,
            chunk_overlap=overlap,
        )

        chunks: list[TranscriptChunk] = []
        length = len(text)
        start = 0

        while start < length:
            window_end = min(start + size, length)
            if window_end == length:
                end = length
            else:
                # Breaking after start + overlap guarantees the next start advances
                end = self._find_break(text, start + overlap + 1, window_end)

            chunk = self._create_chunk(text, start, end, len(chunks))
            if chunk is not None:
                chunks.append(chunk)

            if end >= length:
                break

            start = self._next_start(text, max(end - overlap, start + 1), end)
            if chunks:
                # Each chunk must start strictly after the previous one
                start = max(start, chunks[-1].start_char + 1)

        logger.info(
            "chunking_completed",
            chunks_created=len(chunks),
            chunk_sizes=[len(c.text) for c in chunks],
        )
        return chunks

    def _find_break(self, text: str, lower: int, upper: int) -> int:
        """Find the best cut position in text[lower:upper].

        Args:
            text: Full source text.
            lower: Smallest acceptable cut position.
            upper: End of the target window (hard cut position).

        Returns:
            Position directly after the chosen boundary.
        """
        window = text[lower:upper]

        paragraph = window.rfind("\n\n")
        if paragraph != -1:
            return lower + paragraph + 2

        sentence_ends = [m.end() for m in SENTENCE_END.finditer(window)]
        if sentence_ends:
            return lower + sentence_ends[-1]

        line = window.rfind("\n")
        if line != -1:
            return lower + line + 1

        word = max(window.rfind(" "), window.rfind("\t"))
        if word != -1:
            return lower + word + 1

        return upper

    def _next_start(self, text: str, position: int, end: int) -> int:
        """Snap the overlap start forward to the beginning of a word."""
        if position > 0 and not text[position - 1].isspace():
            for index in range(position, end):
                if text[index].isspace():
                    position = index + 1
                    break
            # Otherwise a single word spans the whole overlap region

        while position < end and text[position].isspace():
            position += 1

        return position

    def _create_chunk(
        self, text: str, start: int, end: int, sequence_index: int
    ) -> TranscriptChunk | None:
        """Create a whitespace-trimmed chunk for text[start:end].

        Returns:
            The chunk, or None if the span holds only whitespace.
        """
        raw = text[start:end]
        stripped = raw.strip()
        if not stripped:
            return None

        leading = len(raw) - len(raw.lstrip())
        chunk_start = start + leading
        return TranscriptChunk(
            text=stripped,
            sequence_index=sequence_index,
            start_char=chunk_start,
            end_char=chunk_start + len(stripped),
        )
