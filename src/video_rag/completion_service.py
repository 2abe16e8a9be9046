"""Completion service that turns retrieved transcript passages into a formatted answer."""

import json

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .exceptions import CompletionProviderError
from .schemas import VectorMatch

logger = get_logger(__name__)

# ==============================================================================
# Prompts
# ==============================================================================

SYSTEM_PROMPT = """You are a helpful assistant that formats and enhances search results from a vector database of video transcript passages.

You will receive the user's question and the passages retrieved for it. Analyze the passages and answer in the following structure:

# Summary
[Provide a 2-3 sentence overview of what was found]

# Key Findings
1. [First key point or insight]
2. [Second key point or insight]
3. [Third key point or insight]

# Detailed Analysis
[For each relevant passage:]
- Context: [Brief context of where this appears]
- Content: [The relevant text or information]
- Significance: [Why this is important to the question]

# Connections
[Describe how different pieces of information relate to each other and to the question]

# Additional Context
[Any relevant background information or related concepts that help understand the results]

Guidelines:
1. Be concise but informative
2. Maintain the original meaning
3. Use bullet points and numbered lists for clarity
4. Highlight direct quotes when relevant
5. Explain technical terms if needed
6. Focus on the most relevant information first
7. If no passages are provided, say in the Summary that no relevant content was found in this video, keep the other sections short, and do not invent transcript content

Format the response in markdown for better readability."""

NO_RESULTS_NOTE = "No matching passages were found in this video's transcript."


def serialize_matches(matches: list[VectorMatch]) -> str:
    """Serialize matches as the JSON passage list embedded in the user prompt."""
    if not matches:
        return NO_RESULTS_NOTE

    passages = [
        {
            "id": match.identifier,
            "score": round(match.score, 4),
            "chunkIndex": match.metadata.chunk_index,
            "text": match.metadata.text,
        }
        for match in matches
    ]
    return json.dumps(passages, indent=2, ensure_ascii=False)


def build_user_prompt(user_query: str, matches: list[VectorMatch]) -> str:
    """Build the user message holding the retrieved passages and the question."""
    return (
        "Here are the search results from the vector database:\n"
        f"{serialize_matches(matches)}\n\n"
        f'Please format and enhance these results based on the user\'s query: "{user_query}"'
    )


class CompletionService:
    """Service for synthesizing answers with an OpenAI-compatible chat model.

    Sampling temperature and output length come from configuration. The
    service makes exactly one provider call per answer and never retries.
    """

    def __init__(self, config: VideoRAGConfig, agent: Agent | None = None):
        """Initialize completion service with configuration.

        Args:
            config: Configuration object with LLM settings.
            agent: Optional pre-built agent.
        """
        self.config = config
        self.agent = agent or self._get_agent()
        logger.info(
            "completion_service_initialized",
            model=config.llm_model,
            base_url=config.llm_base_url,
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
        )

    def _get_agent(self) -> Agent:
        """Build the pydantic-ai agent for the configured provider."""
        model = OpenAIChatModel(
            self.config.llm_model,
            provider=OpenAIProvider(
                base_url=self.config.llm_base_url,
                api_key=self.config.llm_api_key or "ollama",
            ),
        )
        return Agent(
            model,
            system_prompt=SYSTEM_PROMPT,
            model_settings={
                "temperature": self.config.llm_temperature,
                "max_tokens": self.config.llm_max_tokens,
            },
        )

    async def format(self, user_query: str, matches: list[VectorMatch]) -> str:
        """Generate a formatted answer from the question and retrieved passages.

        Args:
            user_query: The user's question.
            matches: Retrieved passages, possibly empty.

        Returns:
            Markdown answer text.

        Raises:
            CompletionProviderError: If the provider fails or returns no text.
        """
        logger.info(
            "completion_started",
            query_length=len(user_query),
            matches=len(matches),
        )

        try:
            result = await self.agent.run(build_user_prompt(user_query, matches))
        except Exception as e:
            logger.exception("completion_failed", error_type=type(e).__name__)
            raise CompletionProviderError(f"Completion provider failed: {e}") from e

        answer = result.output
        if not isinstance(answer, str) or not answer.strip():
            logger.error("completion_empty")
            raise CompletionProviderError("Completion provider returned an empty answer")

        logger.info("completion_completed", response_length=len(answer))
        return answer
