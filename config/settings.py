"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None  # Override default model

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    serpapi_api_key: Optional[str] = None

    # Memory settings
    db_path: str = "data/conversations.db"
    history_window: int = 12  # exchanges; one exchange is a user + assistant turn

    # Research settings
    evidence_cap: int = 2
    working_set_size: int = 8
    web_result_count: int = 6
    recency_days: int = 14
    country: str = "jp"
    language: str = "ja"
    always_research: bool = False  # Research General intent too

    # Timeouts (seconds)
    search_timeout: float = 8.0
    research_timeout: float = 12.0
    llm_timeout: float = 30.0
    llm_max_retries: int = 1

    # Query refinement
    max_query_chars: int = 120
    clarification_lookback: int = 2  # turns scanned for a pending clarification

    # Marketplace links
    marketplace_url_template: str = "https://jp.mercari.com/search/?q={term}&sort="
    always_append_marketplace_link: bool = False

    # Usage limiting (0 disables)
    daily_message_limit: int = 0

    # Batch processing
    max_concurrent_events: int = 8

    reset_commands: list[str] = Field(
        default_factory=lambda: ["リセット", "reset", "/reset"]
    )

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load API keys from environment if not provided
        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        if "serpapi_api_key" not in data or data["serpapi_api_key"] is None:
            data["serpapi_api_key"] = os.environ.get("SERPAPI_API_KEY")

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None
