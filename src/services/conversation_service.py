"""
Merchant message flow.

resolve ticket -> persist merchant message -> apply reactivation -> either
stop (human desk owns the ticket) or call the workflow and persist its reply.
The merchant's message is stored before the workflow is called, and a
workflow failure only degrades the reply text.
"""

from __future__ import annotations

import time
from typing import Optional

from models.agent import AgentMessageResult
from models.message import Message, MessageRole
from models.ticket import InboundMessageRequest
from repositories.base import TicketStore
from services.chat_log_service import ChatLog
from services.escalation_service import EscalationStateMachine
from services.ticket_service import TicketResolver, TicketService
from services.webhook_gateway import WebhookGateway
from utils.logging_config import get_logger

logger = get_logger(__name__)


class ConversationService:
    """Entry point for POST /tickets/messages."""

    def __init__(
        self,
        tickets: Optional[TicketStore] = None,
        chat_log: Optional[ChatLog] = None,
        gateway: Optional[WebhookGateway] = None,
        state_machine: Optional[EscalationStateMachine] = None,
    ):
        if tickets is None:
            from repositories.factory import get_ticket_store

            tickets = get_ticket_store()
        self.tickets = tickets
        self.chat_log = chat_log or ChatLog()
        self.gateway = gateway or WebhookGateway()
        self.resolver = TicketResolver(tickets)
        self.ticket_service = TicketService(tickets)
        self.state_machine = state_machine or EscalationStateMachine(
            tickets=tickets, chat_log=self.chat_log
        )

    def handle_merchant_message(self, request: InboundMessageRequest) -> AgentMessageResult:
        start = time.perf_counter()
        content = request.message.content
        ticket = self.resolver.resolve(request.ticket_id, request.merchant_id, content)

        self.chat_log.append(ticket.id, Message.from_merchant(content))
        ticket = self.state_machine.reactivate_on_merchant_message(ticket)

        if self.state_machine.is_escalated(ticket):
            ticket = self.ticket_service.touch(ticket.id)
            logger.info(
                "Ticket escalated; workflow bypassed",
                extra={"ticket_id": ticket.id, "merchant_id": ticket.merchant_id},
            )
            return AgentMessageResult(
                ticket_id=ticket.id,
                ticket_number=ticket.ticket_number,
                status=ticket.status.value,
                agent_message=None,
                is_escalated=True,
            )

        reply = self.gateway.invoke(ticket.id, ticket.merchant_id, content)
        self.chat_log.append(
            ticket.id,
            Message(
                role=MessageRole.ASSISTANT,
                content=reply.agent_message,
                cards=reply.cards or None,
                tools_used=reply.tools_used,
                actions_taken=reply.actions_taken,
                reasoning=reply.reasoning,
                confidence_score=reply.confidence_score,
                complexity_score=reply.complexity_score,
                is_human=False,
            ),
        )
        ticket = self.ticket_service.touch(ticket.id)

        logger.info(
            "Merchant message handled",
            extra={
                "ticket_id": ticket.id,
                "merchant_id": ticket.merchant_id,
                "outcome": reply.outcome.value,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return AgentMessageResult(
            ticket_id=ticket.id,
            ticket_number=ticket.ticket_number,
            status=ticket.status.value,
            agent_message=reply.agent_message,
            cards=reply.cards,
            tools_used=reply.tools_used,
            actions_taken=reply.actions_taken,
            reasoning=reply.reasoning,
            confidence_score=reply.confidence_score,
            complexity_score=reply.complexity_score,
            is_escalated=False,
        )
