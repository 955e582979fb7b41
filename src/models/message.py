"""Chat log message models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp used for every stored instant."""
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Author side of a chat log entry."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """
    One immutable entry of a ticket's chat log.

    ``seq`` is not stored; it is the entry's position in the log and is
    filled in when the log is read.
    """

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    cards: Optional[List[Dict[str, Any]]] = None
    tools_used: List[str] = Field(default_factory=list)
    actions_taken: List[str] = Field(default_factory=list)
    reasoning: Optional[Any] = None
    confidence_score: Optional[float] = None
    complexity_score: Optional[float] = None
    is_human: bool = False
    is_system: bool = False
    seq: Optional[int] = Field(default=None, exclude=True)

    @classmethod
    def from_merchant(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def from_operator(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content, is_human=True)

    @classmethod
    def system_notice(cls, content: str) -> "Message":
        """Desk-authored notice appended on escalation or resolution."""
        return cls(role=MessageRole.ASSISTANT, content=content, is_human=True, is_system=True)

    def to_storage(self) -> Dict[str, Any]:
        """JSON-safe dict persisted in the chat log (without ``seq``)."""
        return self.model_dump(mode="json")

    def to_api(self) -> Dict[str, Any]:
        """Client representation used by ticket and polling responses."""
        return {
            "seq": self.seq,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "cards": self.cards or [],
            "tools_used": self.tools_used,
            "actions_taken": self.actions_taken,
            "reasoning": self.reasoning,
            "confidence_score": self.confidence_score,
            "complexity_score": self.complexity_score,
            "is_human": self.is_human,
            "is_system": self.is_system,
        }
