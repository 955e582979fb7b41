"""Ticket models and inbound request payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.message import Message, utc_now

DEFAULT_TITLE = "Support Request"


class TicketStatus(str, Enum):
    """Lifecycle states of a support ticket."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Ticket(BaseModel):
    """A merchant support case. ``ticket_number`` is the human-readable TKT id."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    ticket_number: str
    merchant_id: str
    assigned_agent_id: Optional[str] = None
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    title: str = DEFAULT_TITLE
    is_escalated: bool = False
    escalated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_api(self, chat_history: Optional[List[Message]] = None) -> Dict[str, Any]:
        """Wire representation shared by the merchant and admin surfaces."""
        return {
            "_id": self.id,
            "ticket_id": self.ticket_number,
            "merchant_id": self.merchant_id,
            "assigned_agent_id": self.assigned_agent_id,
            "status": self.status.value,
            "priority": self.priority.value,
            "title": self.title or DEFAULT_TITLE,
            "is_escalated": self.is_escalated,
            "escalated_at": self.escalated_at.isoformat() if self.escalated_at else None,
            "chat_history": [message.to_api() for message in chat_history or []],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def _strip_required(value: str, field: str) -> str:
    if not (value or "").strip():
        raise ValueError(f"{field} is required")
    return value


class MessageContent(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        return _strip_required(value, "message content")


class InboundMessageRequest(BaseModel):
    """Merchant message payload for POST /tickets/messages."""

    model_config = ConfigDict(populate_by_name=True)

    ticket_id: Optional[str] = Field(default=None, alias="_id")
    merchant_id: str
    message: MessageContent

    @field_validator("message", mode="before")
    @classmethod
    def coerce_plain_message(cls, value: Any) -> Any:
        """Accept a bare string as shorthand for {"content": ...}."""
        if isinstance(value, str):
            return {"content": value}
        return value

    @field_validator("merchant_id")
    @classmethod
    def validate_merchant(cls, value: str) -> str:
        return _strip_required(value, "merchant_id")


class StatusUpdateRequest(BaseModel):
    status: TicketStatus
    merchant_id: Optional[str] = None

    @field_validator("status")
    @classmethod
    def reject_escalated(cls, value: TicketStatus) -> TicketStatus:
        """Escalation only happens through the escalate operation."""
        if value == TicketStatus.ESCALATED:
            raise ValueError("use the escalate operation to escalate a ticket")
        return value


class PriorityUpdateRequest(BaseModel):
    priority: TicketPriority
    merchant_id: Optional[str] = None


class EscalateRequest(BaseModel):
    merchant_id: str

    @field_validator("merchant_id")
    @classmethod
    def validate_merchant(cls, value: str) -> str:
        return _strip_required(value, "merchant_id")


class AdminMessageRequest(BaseModel):
    admin_id: str
    content: str

    @field_validator("admin_id", "content")
    @classmethod
    def validate_required(cls, value: str) -> str:
        return _strip_required(value, "admin_id and content")


class ResolveRequest(BaseModel):
    admin_id: str

    @field_validator("admin_id")
    @classmethod
    def validate_admin(cls, value: str) -> str:
        return _strip_required(value, "admin_id")
