"""Human-operator path: admin messages, escalated queue, resolution."""

from __future__ import annotations

from typing import List, Optional

from models.message import Message
from models.ticket import Ticket
from repositories.base import TicketStore
from services.chat_log_service import ChatLog
from services.escalation_service import EscalationStateMachine, TransitionResult
from services.user_directory import UserDirectory
from services.webhook_gateway import WebhookGateway
from utils.logging_config import get_logger

logger = get_logger(__name__)


class AdminMessageService:
    """
    Operations available to admins. None of them call the automation workflow
    except the optional resolution notification.
    """

    def __init__(
        self,
        tickets: Optional[TicketStore] = None,
        chat_log: Optional[ChatLog] = None,
        directory: Optional[UserDirectory] = None,
        state_machine: Optional[EscalationStateMachine] = None,
        gateway: Optional[WebhookGateway] = None,
    ):
        if tickets is None:
            from repositories.factory import get_ticket_store

            tickets = get_ticket_store()
        self.tickets = tickets
        self.chat_log = chat_log or ChatLog()
        self.directory = directory or UserDirectory()
        self.state_machine = state_machine or EscalationStateMachine(
            tickets=self.tickets, chat_log=self.chat_log, directory=self.directory
        )
        self.gateway = gateway or WebhookGateway()

    def send_human_message(self, ticket_id: str, admin_id: str, content: str) -> Message:
        """Transition the ticket to human handling, then append the admin's reply."""
        ticket = self.state_machine.mark_human_handled(ticket_id, admin_id)
        message = Message.from_operator(content)
        self.chat_log.append(ticket.id, message)
        logger.info(
            "Admin message sent",
            extra={"ticket_id": ticket.id, "admin_id": admin_id, "status": ticket.status.value},
        )
        return message

    def list_escalated_tickets(self, admin_id: str) -> List[Ticket]:
        self.directory.require_admin(admin_id)
        tickets = self.tickets.list_escalated()
        logger.info("Listed escalated tickets", extra={"admin_id": admin_id, "count": len(tickets)})
        return tickets

    def resolve_ticket(self, ticket_id: str, admin_id: str) -> TransitionResult:
        result = self.state_machine.resolve(ticket_id, admin_id)
        if result.changed:
            self.gateway.notify_resolved(ticket_id, result.ticket.merchant_id, admin_id)
        return result

    def current_ticket(self, ticket_id: str) -> Ticket:
        return self.state_machine.require_ticket(ticket_id)
