"""
OpenAI text generation for questionnaire turns.

The model only phrases the affirmation and question; which parameter is
asked is decided by the planner. Any failure is raised as AIServiceError
so the orchestrator can fall back to a deterministic question.
"""
import logging
from typing import Optional

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

# Maximum chars to log from a model response
MAX_LOG_CHARS = 500


class AIServiceError(Exception):
    """The text model is not configured or the call failed."""


class AITextService:
    """
    Thin async wrapper around chat completions.

    Args:
        api_key: OpenAI API key; without one, every call raises AIServiceError
        model: Default model name
        temperature: Default sampling temperature
    """

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", temperature: float = 0.35):
        self.model = model
        self.temperature = temperature
        self.client: Optional[AsyncOpenAI] = AsyncOpenAI(api_key=api_key) if api_key else None
        if self.client:
            logger.info(f"OpenAI text service configured with model: {self.model}")
        else:
            logger.warning("OpenAI text service NOT configured - OPENAI_API_KEY missing, using fallback questions")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def generate_text(
        self,
        system: str,
        user: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        session_id: str = "unknown",
    ) -> str:
        """
        Generate one assistant reply.

        Args:
            system: System prompt
            user: User content
            model: Model override (e.g., from the character)
            temperature: Temperature override
            session_id: For log correlation

        Returns:
            The generated text, stripped

        Raises:
            AIServiceError: If unconfigured, the call fails, or the reply is empty
        """
        if self.client is None:
            raise AIServiceError("OPENAI_API_KEY is not configured")

        model_name = model or self.model
        logger.info(f"Calling OpenAI ({model_name}) for sessionId={session_id}")
        try:
            response = await self.client.chat.completions.create(
                model=model_name,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=300,
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(
                f"METRIC model_api_error error={type(e).__name__} sessionId={session_id}"
            )
            raise AIServiceError(f"OpenAI call failed: {type(e).__name__}") from e

        logger.debug(f"OpenAI raw response: {(content or '')[:MAX_LOG_CHARS]}")
        if not content or not content.strip():
            raise AIServiceError("OpenAI returned an empty reply")
        return content.strip()
