"""Chat model backends used by the reply pipeline."""

from .base_client import BaseLLMClient, LLMResponse, LLMUnavailableError, Message
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "LLMResponse",
    "LLMUnavailableError",
    "Message",
    "create_llm_client",
    "LLMProvider",
]
