"""
StarOne - Base Pipeline

Abstract base class for AI analysis pipelines with OpenAI integration.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import httpx
import logging
from openai import AsyncOpenAI, OpenAIError

from starone.config import Settings, get_settings
from starone.core.errors import GenerationFailure, ParseFailure
from starone.pipelines.recovery import recover_json_object

logger = logging.getLogger(__name__)


class BasePipeline(ABC):
    """
    Abstract base class for AI analysis pipelines.

    All pipelines must:
    - Have a fixed prompt template version
    - Request a fixed JSON output shape
    - Run with deterministic decoding
    """

    # Pipeline version for tracking
    VERSION = "1.0"

    # Deterministic decoding
    TEMPERATURE = 0
    TOP_P = 1

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        if client is None and self.settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                timeout=httpx.Timeout(self.settings.generation_timeout, connect=10.0)
            )
        self.client = client
        self.tokens_used = 0

    @property
    def is_configured(self) -> bool:
        """Whether a generation client is available."""
        return self.client is not None

    @property
    @abstractmethod
    def name(self) -> str:
        """Pipeline name for logging."""
        pass

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """System prompt defining the pipeline's role."""
        pass

    async def _generate(self, user_prompt: str) -> str:
        """Call the model and return its raw text."""
        if self.client is None:
            raise GenerationFailure("No generation client configured")

        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": user_prompt}
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.settings.openai_model,
                messages=messages,
                temperature=self.TEMPERATURE,
                top_p=self.TOP_P,
                max_tokens=self.settings.max_tokens
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API error in pipeline {self.name}: {e}")
            raise GenerationFailure(str(e)) from e

        # Track token usage
        if getattr(response, "usage", None):
            self.tokens_used += response.usage.total_tokens

        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise GenerationFailure(f"Unexpected completion shape: {e}") from e

    async def _generate_json(self, user_prompt: str) -> Dict[str, Any]:
        """Call the model and recover the JSON object from its output."""
        content = await self._generate(user_prompt)
        try:
            return recover_json_object(content)
        except ParseFailure:
            logger.warning(f"Failed to parse JSON from pipeline {self.name}")
            raise

    @abstractmethod
    async def analyze(self, *args, **kwargs) -> Any:
        """Run the analysis pipeline."""
        pass
