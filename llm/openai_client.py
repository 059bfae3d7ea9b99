"""OpenAI chat backend."""

import os
import logging
from typing import List, Optional

from .base_client import BaseLLMClient, LLMResponse, LLMUnavailableError, Message

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """Chat completions through the OpenAI SDK."""

    DEFAULT_MODEL = "gpt-4o-mini"
    provider_name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 1
    ):
        """
        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY)
            model: Model override (default: gpt-4o-mini)
            timeout: Per-request timeout in seconds
            max_retries: Retries the SDK performs before raising
        """
        super().__init__(model or self.DEFAULT_MODEL)
        self.client = None

        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            logger.warning("No OpenAI API key provided")
            return

        from openai import OpenAI
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)
        logger.info(f"OpenAI client ready: {self.model} (timeout={timeout}s, retries={max_retries})")

    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: int = 600
    ) -> LLMResponse:
        if self.client is None:
            raise LLMUnavailableError("OpenAI client has no API key")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[msg.model_dump() for msg in messages],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"OpenAI request failed ({self.model}): {e}")
            raise

        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            content=choice.message.content or "",
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            finish_reason=choice.finish_reason
        )
