"""Conversation and message storage for HealSage.

Handles conversation creation, message persistence, and history lookup for
multi-turn chat interactions. The in-memory store keeps everything in
process-local dicts; a durable backend only needs to implement
ConversationRepository.
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from healsage.errors import NotFoundError
from healsage.rag.service import Citation

logger = structlog.get_logger()

ROLES = ("user", "assistant")
UPDATABLE_FIELDS = ("title",)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Conversation:
    id: str
    title: Optional[str]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Message:
    id: str
    conversation_id: str
    role: str
    content: str
    timestamp: datetime
    citations: Optional[List[Citation]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "role": self.role,
            "content": self.content,
            "citations": (
                [c.to_dict() for c in self.citations] if self.citations is not None else None
            ),
            "timestamp": self.timestamp.isoformat(),
        }


class ConversationRepository(ABC):
    """Create/read/update/list capability set for conversations and messages."""

    @abstractmethod
    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        """Create a conversation with a fresh id and timestamps."""

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Return the conversation or None if it doesn't exist."""

    @abstractmethod
    def update_conversation(self, conversation_id: str, **fields: Any) -> Conversation:
        """Update conversation metadata, refreshing its update timestamp.

        Raises:
            NotFoundError: If the conversation doesn't exist
        """

    @abstractmethod
    def list_conversations(self) -> List[Conversation]:
        """Return conversations, most recently updated first."""

    @abstractmethod
    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        citations: Optional[List[Citation]] = None,
    ) -> Message:
        """Append a message to a conversation.

        Raises:
            NotFoundError: If the conversation doesn't exist
        """

    @abstractmethod
    def get_messages(self, conversation_id: str) -> List[Message]:
        """Return a conversation's messages in chronological order."""


class InMemoryConversationStore(ConversationRepository):
    """Conversation repository backed by dicts. No locking."""

    def __init__(self):
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, Message] = {}

    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        now = utcnow()
        conversation = Conversation(
            id=str(uuid.uuid4()), title=title, created_at=now, updated_at=now
        )
        self._conversations[conversation.id] = conversation
        logger.info("conversation_created", conversation_id=conversation.id)
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    def update_conversation(self, conversation_id: str, **fields: Any) -> Conversation:
        existing = self._conversations.get(conversation_id)
        if existing is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")

        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")

        updated = replace(existing, updated_at=utcnow(), **fields)
        self._conversations[conversation_id] = updated
        logger.info("conversation_updated", conversation_id=conversation_id)
        return updated

    def list_conversations(self) -> List[Conversation]:
        return sorted(self._conversations.values(), key=lambda c: c.updated_at, reverse=True)

    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        citations: Optional[List[Citation]] = None,
    ) -> Message:
        if role not in ROLES:
            raise ValueError(f"Invalid message role: {role}")

        if conversation_id not in self._conversations:
            raise NotFoundError(f"Conversation {conversation_id} not found")

        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            timestamp=utcnow(),
            citations=list(citations) if citations is not None else None,
        )
        self._messages[message.id] = message

        logger.info(
            "conversation_message_added",
            conversation_id=conversation_id,
            role=role,
            message_id=message.id,
        )
        return message

    def get_messages(self, conversation_id: str) -> List[Message]:
        # sorted() is stable, so same-timestamp messages keep insertion order
        return sorted(
            (m for m in self._messages.values() if m.conversation_id == conversation_id),
            key=lambda m: m.timestamp,
        )
