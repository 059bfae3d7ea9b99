"""Conversation context manager for LLM context window management."""

import logging
from typing import List, Optional

from .sqlite_store import SQLiteMemoryStore
from .models import ConversationTurn
from .errors import ConversationResetError
from llm.base_client import Message
from schemas.context import EventSource

logger = logging.getLogger(__name__)

UNKNOWN_CONVERSATION_ID = "unknown"
REPLAYED_ROLES = ("user", "assistant")


def derive_conversation_id(source: Optional[EventSource]) -> str:
    """
    Pick the conversation id for an event source.

    A group shares one context even when individual members speak in it,
    so group beats room beats user.
    """
    if source is None:
        return UNKNOWN_CONVERSATION_ID
    return source.group_id or source.room_id or source.user_id or UNKNOWN_CONVERSATION_ID


def find_pending_query(
    history: List[ConversationTurn],
    clarification_text: str,
    lookback: int = 2
) -> Optional[str]:
    """
    Find the query left pending by a clarification prompt.

    Scans the last ``lookback`` turns backward for the most recent assistant
    turn. When that turn is the clarification prompt, the user turn right
    before it is the pending query.

    Args:
        history: Chronological turns
        clarification_text: The fixed clarification question
        lookback: Number of trailing turns to scan

    Returns:
        The pending user query, or None when no clarification is pending
    """
    if not history or lookback <= 0:
        return None

    start = max(0, len(history) - lookback)
    for index in range(len(history) - 1, start - 1, -1):
        turn = history[index]
        if turn.role != "assistant":
            continue
        if turn.content.strip() != clarification_text.strip():
            return None
        for previous in range(index - 1, -1, -1):
            if history[previous].role == "user":
                return history[previous].content
        return None

    return None


class ConversationContextManager:
    """Owns the per-conversation turn log."""

    def __init__(
        self,
        store: SQLiteMemoryStore,
        history_window: int = 12
    ):
        """
        Initialize context manager.

        Args:
            store: SQLite memory store
            history_window: Exchanges replayed into prompts (two turns each)
        """
        self.store = store
        self.history_window = history_window

    @property
    def max_turns(self) -> int:
        return self.history_window * 2

    def load(self, conversation_id: str) -> List[ConversationTurn]:
        """
        Load the most recent turns of a conversation.

        Returns an empty list when the store fails; replying with no history
        is preferable to not replying.
        """
        try:
            turns = self.store.get_recent_turns(conversation_id, limit=self.max_turns)
        except Exception as e:
            logger.error(f"Failed to load history for {conversation_id}: {e}")
            return []

        return [turn for turn in turns if turn.role in REPLAYED_ROLES]

    def append(self, conversation_id: str, role: str, content: str) -> None:
        """Persist one turn. Failures are logged, never raised."""
        try:
            self.store.add_turn(conversation_id, role, content)
        except Exception as e:
            logger.error(f"Failed to append {role} turn for {conversation_id}: {e}")

    def reset(self, conversation_id: str) -> None:
        """
        Delete all turns of a conversation.

        Raises:
            ConversationResetError: If the store could not clear the log
        """
        try:
            self.store.delete_turns(conversation_id)
        except Exception as e:
            logger.error(f"Failed to reset conversation {conversation_id}: {e}")
            raise ConversationResetError(conversation_id, str(e)) from e

    def get_context_messages(self, conversation_id: str) -> List[Message]:
        """Get loaded history as LLM messages."""
        return to_messages(self.load(conversation_id))


def to_messages(turns: List[ConversationTurn]) -> List[Message]:
    """Convert turns to LLM messages, keeping only replayable roles."""
    return [
        Message(role=turn.role, content=turn.content)
        for turn in turns
        if turn.role in REPLAYED_ROLES
    ]
