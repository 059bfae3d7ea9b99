"""Memory data models."""

from datetime import datetime
from pydantic import BaseModel, Field


class ConversationTurn(BaseModel):
    """A single turn in a conversation."""
    turn_id: int
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}
