"""Anthropic chat backend."""

import os
import logging
from typing import List, Optional, Tuple

from .base_client import BaseLLMClient, LLMResponse, LLMUnavailableError, Message

logger = logging.getLogger(__name__)


def split_system(messages: List[Message]) -> Tuple[str, List[dict]]:
    """Anthropic takes the system prompt separately from the turn list."""
    system_parts = []
    turns = []
    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
        else:
            turns.append({"role": msg.role, "content": msg.content})
    return "\n".join(system_parts).strip(), turns


class AnthropicClient(BaseLLMClient):
    """Messages API through the Anthropic SDK."""

    DEFAULT_MODEL = "claude-3-5-haiku-latest"
    provider_name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 1
    ):
        """
        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY)
            model: Model override
            timeout: Per-request timeout in seconds
            max_retries: Retries the SDK performs before raising
        """
        super().__init__(model or self.DEFAULT_MODEL)
        self.client = None

        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            logger.warning("No Anthropic API key provided")
            return

        import anthropic
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
        logger.info(f"Anthropic client ready: {self.model} (timeout={timeout}s, retries={max_retries})")

    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: int = 600
    ) -> LLMResponse:
        if self.client is None:
            raise LLMUnavailableError("Anthropic client has no API key")

        system, turns = split_system(messages)
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system:
            kwargs["system"] = system

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            logger.error(f"Anthropic request failed ({self.model}): {e}")
            raise

        text = "".join(block.text for block in response.content if block.type == "text")
        usage = response.usage
        return LLMResponse(
            content=text,
            prompt_tokens=usage.input_tokens if usage else 0,
            completion_tokens=usage.output_tokens if usage else 0,
            finish_reason=response.stop_reason
        )
