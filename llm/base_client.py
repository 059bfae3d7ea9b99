"""Chat model interface shared by the refiner, extractor and synthesizer."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel

logger = logging.getLogger(__name__)

TRUNCATED_FINISH_REASONS = ("length", "max_tokens")


class LLMUnavailableError(RuntimeError):
    """Raised when a chat call is made on a client built without credentials."""


class Message(BaseModel):
    """Chat message."""
    role: str  # "system", "user", "assistant"
    content: str


class LLMResponse(BaseModel):
    """One completion and its token accounting."""
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    finish_reason: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.finish_reason in TRUNCATED_FINISH_REASONS


class BaseLLMClient(ABC):
    """
    Abstract chat backend.

    Providers raise on transport or API errors; callers decide whether a
    failure becomes a fallback.
    """

    provider_name = ""

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: int = 600
    ) -> LLMResponse:
        """
        Send one chat completion request.

        Args:
            messages: System, history and user messages in order
            temperature: Sampling temperature (0-1)
            max_tokens: Completion budget

        Returns:
            LLMResponse with generated content
        """
        pass

    def get_provider_name(self) -> str:
        return self.provider_name

    def get_model_name(self) -> str:
        return self.model

    def generate(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: int = 600
    ) -> str:
        """Send a chat request and return only the stripped text."""
        response = self.chat(messages, temperature=temperature, max_tokens=max_tokens)
        if response.truncated:
            logger.info(
                f"{self.provider_name} reply hit max_tokens={max_tokens} "
                f"({response.completion_tokens} tokens)"
            )
        return (response.content or "").strip()
