"""LLM client factory."""

from enum import Enum
from typing import Optional

from .base_client import BaseLLMClient
from .openai_client import OpenAIClient
from .anthropic_client import AnthropicClient


class LLMProvider(str, Enum):
    """Supported chat backends."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


CLIENT_CLASSES = {
    LLMProvider.OPENAI: OpenAIClient,
    LLMProvider.ANTHROPIC: AnthropicClient,
}


def create_llm_client(
    provider: LLMProvider,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    timeout: float = 30.0,
    max_retries: int = 1
) -> BaseLLMClient:
    """
    Build the chat backend named in settings.

    Raises:
        ValueError: If provider is not supported
    """
    client_class = CLIENT_CLASSES[LLMProvider(provider)]
    return client_class(api_key=api_key, model=model, timeout=timeout, max_retries=max_retries)
