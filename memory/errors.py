"""Memory errors."""


class ConversationResetError(Exception):
    """Raised when the turn log of a conversation could not be cleared."""

    def __init__(self, conversation_id: str, message: str) -> None:
        self.conversation_id = conversation_id
        self.message = message
        super().__init__(f"Reset failed for {conversation_id}: {message}")
