"""Reply schemas."""

from enum import Enum
from pydantic import BaseModel, Field


class LinkKind(str, Enum):
    """Kind of mandatory link."""
    CITATION = "citation"
    MARKETPLACE = "marketplace"


class LinkObligation(BaseModel):
    """A link that must appear in the final reply text."""
    kind: LinkKind
    url: str


class ReplyDraft(BaseModel):
    """Output from the Reply Synthesizer."""
    text: str
    obligations: list[LinkObligation] = Field(default_factory=list)
    used_fallback: bool = False
