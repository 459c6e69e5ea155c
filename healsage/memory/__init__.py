"""Conversation memory for multi-turn chat."""
from healsage.memory.manager import (
    Conversation,
    ConversationRepository,
    InMemoryConversationStore,
    Message,
)

__all__ = [
    "Conversation",
    "ConversationRepository",
    "InMemoryConversationStore",
    "Message",
]
