"""Pydantic schemas for the research assistant."""

from .context import Intent, ConversationState, EventSource, InboundEvent
from .evidence import SourcePlatform, RecencyWindow, SearchResult, EvidenceBundle
from .responses import LinkKind, LinkObligation, ReplyDraft

__all__ = [
    "Intent",
    "ConversationState",
    "EventSource",
    "InboundEvent",
    "SourcePlatform",
    "RecencyWindow",
    "SearchResult",
    "EvidenceBundle",
    "LinkKind",
    "LinkObligation",
    "ReplyDraft",
]
