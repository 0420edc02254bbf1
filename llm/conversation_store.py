"""
ConversationStore protocol for the Teams AI Agent.

Abstracts conversation storage so the orchestrator can work with the
in-memory store or a persistent backend.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class Role(Enum):
    """Conversation participants."""
    USER = "user"
    ASSISTANT = "assistant"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ConversationTurn:
    """One message in a user's conversation. Immutable once created."""
    role: Role
    text: str
    tool_result: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=utc_now)
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "role": self.role.value,
            "text": self.text,
            "toolResult": self.tool_result,
            "timestamp": self.timestamp,
            "truncated": self.truncated,
        }


@runtime_checkable
class ConversationStore(Protocol):
    """Protocol for conversation persistence."""

    async def get_history(self, user_id: str) -> List[ConversationTurn]:
        """Get all turns for a user, oldest first."""
        ...

    async def recent(self, user_id: str, limit: int) -> List[ConversationTurn]:
        """Get the last `limit` turns for a user, oldest first."""
        ...

    async def append(self, user_id: str, turn: ConversationTurn) -> None:
        """Append a turn to the user's conversation."""
        ...

    async def clear(self, user_id: str) -> None:
        """Remove the user's conversation entirely."""
        ...


class InMemoryConversationStore:
    """Process-lifetime conversation store keyed by user id."""

    def __init__(self):
        self._conversations: Dict[str, List[ConversationTurn]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def get_history(self, user_id: str) -> List[ConversationTurn]:
        return list(self._conversations.get(user_id, ()))

    async def recent(self, user_id: str, limit: int) -> List[ConversationTurn]:
        if limit <= 0:
            return []
        return list(self._conversations.get(user_id, ())[-limit:])

    async def append(self, user_id: str, turn: ConversationTurn) -> None:
        async with self._lock(user_id):
            self._conversations.setdefault(user_id, []).append(turn)

    async def clear(self, user_id: str) -> None:
        async with self._lock(user_id):
            self._conversations.pop(user_id, None)
        logger.info(f"Conversation history cleared for {user_id}")

    def user_count(self) -> int:
        return len(self._conversations)
