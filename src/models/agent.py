"""Pydantic models for the automation workflow reply and merchant results."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WebhookOutcome(str, Enum):
    """How the gateway arrived at the reply; logged, never sent to clients."""

    PARSED = "parsed"
    RAW_TEXT = "raw_text"
    UNPARSEABLE = "unparseable"
    EMPTY_BODY = "empty_body"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"


class NormalizedAgentReply(BaseModel):
    """Fixed internal shape of whatever the automation workflow returned."""

    agent_message: str
    cards: List[Dict[str, Any]] = Field(default_factory=list)
    tools_used: List[str] = Field(default_factory=list)
    actions_taken: List[str] = Field(default_factory=list)
    reasoning: Optional[Any] = None
    confidence_score: Optional[float] = None
    complexity_score: Optional[float] = None
    outcome: WebhookOutcome = WebhookOutcome.PARSED


class AgentMessageResult(BaseModel):
    """Data returned to the merchant for POST /tickets/messages."""

    success: bool = True
    ticket_id: str
    ticket_number: str
    status: str
    agent_message: Optional[str] = None
    cards: List[Dict[str, Any]] = Field(default_factory=list)
    tools_used: List[str] = Field(default_factory=list)
    actions_taken: List[str] = Field(default_factory=list)
    reasoning: Optional[Any] = None
    confidence_score: Optional[float] = None
    complexity_score: Optional[float] = None
    is_escalated: bool = False
