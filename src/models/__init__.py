"""Pydantic models for API payloads."""

from models.agent import AgentMessageResult, NormalizedAgentReply, WebhookOutcome  # noqa: F401
from models.message import Message, MessageRole  # noqa: F401
from models.response import ApiResponse  # noqa: F401
from models.ticket import (  # noqa: F401
    AdminMessageRequest,
    EscalateRequest,
    InboundMessageRequest,
    PriorityUpdateRequest,
    ResolveRequest,
    StatusUpdateRequest,
    Ticket,
    TicketPriority,
    TicketStatus,
)
