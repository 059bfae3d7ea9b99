"""Intent, conversation state and inbound event schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Intent(str, Enum):
    """Closed set of intents an utterance is routed to."""
    PRODUCT = "product"
    PROXIMITY = "proximity"
    ADDRESS = "address"
    DESCRIBE = "describe"
    GENERAL = "general"


class ConversationState(str, Enum):
    """Single state bit kept per conversation."""
    NORMAL = "normal"
    AWAITING_LOCATION = "awaiting_location"


class EventSource(BaseModel):
    """Conversation-scope identity hints carried by an inbound event."""
    group_id: Optional[str] = None
    room_id: Optional[str] = None
    user_id: Optional[str] = None


class InboundEvent(BaseModel):
    """Event delivered by the messaging transport."""
    source: EventSource = Field(default_factory=EventSource)
    message_type: str = "text"  # "text", "image", "sticker", ...
    text: Optional[str] = None
    reply_token: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.message_type == "text" and self.text is not None
