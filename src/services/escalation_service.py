"""
Ticket status / escalation state machine.

Transitions are last-write-wins except where a guard is needed to keep the
chat log free of duplicate system notices: escalation and resolution use an
atomic compare-and-set on the store, and only the caller that wins the guard
appends the notice.

    open | in_progress | resolved --escalate--> escalated  (+ notice)
    escalated --escalate--> escalated                       (no-op)
    any --admin message--> in_progress, is_escalated=True
    escalated | in_progress | is_escalated --admin resolve--> resolved  (+ notice)
    resolved --merchant message--> in_progress
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from models.message import Message, utc_now
from models.ticket import Ticket, TicketStatus
from repositories.base import TicketStore
from services.chat_log_service import ChatLog
from services.user_directory import UserDirectory
from utils.error_handling import InvalidTransitionError, NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)

ESCALATION_NOTICE = (
    "You've been connected to a human agent. They will respond to you shortly. "
    "Please provide any additional details about your issue."
)
RESOLUTION_NOTICE = (
    "This ticket has been marked as resolved by the support agent. If you need "
    "further assistance, please feel free to start a new conversation."
)

ESCALATABLE_FROM = (TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED)
RESOLVABLE_FROM = (TicketStatus.ESCALATED, TicketStatus.IN_PROGRESS)


@dataclass
class TransitionResult:
    """Outcome of a guarded transition."""

    ticket: Ticket
    changed: bool
    system_message: Optional[Message] = None


class EscalationStateMachine:
    """Owns every status/escalation change and its chat log side effects."""

    def __init__(
        self,
        tickets: Optional[TicketStore] = None,
        chat_log: Optional[ChatLog] = None,
        directory: Optional[UserDirectory] = None,
    ):
        if tickets is None:
            from repositories.factory import get_ticket_store

            tickets = get_ticket_store()
        self.tickets = tickets
        self.chat_log = chat_log or ChatLog()
        self.directory = directory or UserDirectory()

    @staticmethod
    def is_escalated(ticket: Ticket) -> bool:
        return ticket.is_escalated

    def require_ticket(self, ticket_id: str, merchant_id: Optional[str] = None) -> Ticket:
        if merchant_id is None:
            ticket = self.tickets.get(ticket_id)
        else:
            ticket = self.tickets.find_for_merchant(ticket_id, merchant_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    def escalate(self, ticket_id: str, merchant_id: str) -> TransitionResult:
        """Merchant asks for a human. Idempotent while the ticket is escalated."""
        ticket = self.require_ticket(ticket_id, merchant_id)
        if ticket.is_escalated:
            logger.info("Escalation ignored; already escalated", extra={"ticket_id": ticket_id})
            return TransitionResult(ticket=ticket, changed=False)

        now = utc_now()
        updated = self.tickets.compare_and_set(
            ticket_id,
            {
                "is_escalated": True,
                "escalated_at": now,
                "status": TicketStatus.ESCALATED,
                "updated_at": now,
            },
            status_in=ESCALATABLE_FROM,
            is_escalated=False,
        )
        if updated is None:
            # Lost the race or the ticket is in a state that cannot escalate.
            current = self.require_ticket(ticket_id)
            if current.is_escalated:
                return TransitionResult(ticket=current, changed=False)
            raise InvalidTransitionError(
                f"Cannot escalate a ticket in status '{current.status.value}'"
            )

        notice = Message.system_notice(ESCALATION_NOTICE)
        self.chat_log.append(ticket_id, notice)
        logger.info(
            "Ticket escalated", extra={"ticket_id": ticket_id, "merchant_id": merchant_id}
        )
        return TransitionResult(ticket=updated, changed=True, system_message=notice)

    def reactivate_on_merchant_message(self, ticket: Ticket) -> Ticket:
        """A merchant writing into a resolved ticket brings it back to in_progress."""
        if ticket.status != TicketStatus.RESOLVED:
            return ticket
        updated = self.tickets.compare_and_set(
            ticket.id,
            {"status": TicketStatus.IN_PROGRESS, "updated_at": utc_now()},
            status_in=(TicketStatus.RESOLVED,),
        )
        if updated is None:
            return self.require_ticket(ticket.id)
        logger.info("Resolved ticket reactivated by merchant", extra={"ticket_id": ticket.id})
        return updated

    def mark_human_handled(self, ticket_id: str, admin_id: str) -> Ticket:
        """
        Admin wrote into the ticket.

        Forces in_progress + is_escalated on any ticket, including ones that
        were never escalated, and assigns the admin.
        """
        self.directory.require_admin(admin_id)
        self.require_ticket(ticket_id)
        ticket = self.tickets.update(
            ticket_id,
            {
                "status": TicketStatus.IN_PROGRESS,
                "is_escalated": True,
                "assigned_agent_id": admin_id,
                "updated_at": utc_now(),
            },
        )
        logger.info(
            "Ticket marked human-handled", extra={"ticket_id": ticket_id, "admin_id": admin_id}
        )
        return ticket

    def resolve(self, ticket_id: str, admin_id: str) -> TransitionResult:
        """Admin closes out the human conversation."""
        self.directory.require_admin(admin_id)
        ticket = self.require_ticket(ticket_id)
        if ticket.status == TicketStatus.RESOLVED and not ticket.is_escalated:
            return TransitionResult(ticket=ticket, changed=False)

        changes = {"status": TicketStatus.RESOLVED, "is_escalated": False, "updated_at": utc_now()}
        updated = self.tickets.compare_and_set(ticket_id, changes, status_in=RESOLVABLE_FROM)
        if updated is None:
            # Still escalated whatever the status says.
            updated = self.tickets.compare_and_set(ticket_id, changes, is_escalated=True)
        if updated is None:
            current = self.require_ticket(ticket_id)
            if current.status == TicketStatus.RESOLVED and not current.is_escalated:
                return TransitionResult(ticket=current, changed=False)
            raise InvalidTransitionError(
                f"Cannot resolve a ticket in status '{current.status.value}'"
            )

        notice = Message.system_notice(RESOLUTION_NOTICE)
        self.chat_log.append(ticket_id, notice)
        logger.info("Ticket resolved", extra={"ticket_id": ticket_id, "admin_id": admin_id})
        return TransitionResult(ticket=updated, changed=True, system_message=notice)
