"""Memory system for conversation persistence."""

from .models import ConversationTurn
from .errors import ConversationResetError
from .sqlite_store import SQLiteMemoryStore
from .usage_store import SQLiteUsageStore
from .context_manager import (
    ConversationContextManager,
    derive_conversation_id,
    find_pending_query,
    to_messages,
)

__all__ = [
    "ConversationTurn",
    "ConversationResetError",
    "SQLiteMemoryStore",
    "SQLiteUsageStore",
    "ConversationContextManager",
    "derive_conversation_id",
    "find_pending_query",
    "to_messages",
]
