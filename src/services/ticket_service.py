"""
Ticket identity resolution and merchant-facing ticket updates.

TicketResolver is the find-or-create step every inbound merchant message goes
through; the existing/new branch is explicit so each side is testable.
"""

from __future__ import annotations

from datetime import datetime
import secrets
import string
import time
from typing import List, Optional

from models.message import utc_now
from models.ticket import Ticket, TicketPriority, TicketStatus
from repositories.base import TicketStore
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase
TITLE_MAX_LENGTH = 60
# Manual status moves to these hand the ticket back to the workflow.
DE_ESCALATING_STATUSES = (TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_ticket_number(now_ms: Optional[int] = None) -> str:
    """
    Build ``TKT-<base36 ms timestamp>-<4 random base36 chars>``.

    No uniqueness check is made; the millisecond timestamp plus 36^4 random
    suffixes keep collisions improbable and the internal ``id`` stays unique.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
    return f"TKT-{to_base36(now_ms)}-{suffix}"


def build_title(content: str) -> str:
    """First 60 characters of the opening message, with an ellipsis when cut."""
    if len(content) > TITLE_MAX_LENGTH:
        return content[:TITLE_MAX_LENGTH] + "..."
    return content


class TicketResolver:
    """Turns an inbound merchant message into a bound ticket."""

    def __init__(self, tickets: Optional[TicketStore] = None):
        if tickets is None:
            from repositories.factory import get_ticket_store

            tickets = get_ticket_store()
        self.tickets = tickets

    def find_existing(self, ticket_id: Optional[str], merchant_id: str) -> Optional[Ticket]:
        if not ticket_id:
            return None
        return self.tickets.find_for_merchant(ticket_id, merchant_id)

    def create(self, merchant_id: str, first_message_content: str) -> Ticket:
        ticket = Ticket(
            ticket_number=generate_ticket_number(),
            merchant_id=merchant_id,
            status=TicketStatus.OPEN,
            priority=TicketPriority.MEDIUM,
            title=build_title(first_message_content),
        )
        self.tickets.create(ticket)
        logger.info(
            "Created new ticket",
            extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "merchant_id": merchant_id,
            },
        )
        return ticket

    def resolve(
        self, ticket_id: Optional[str], merchant_id: str, first_message_content: str
    ) -> Ticket:
        """Return the merchant's existing ticket unchanged, or create a new one."""
        existing = self.find_existing(ticket_id, merchant_id)
        if existing is not None:
            return existing
        if ticket_id:
            logger.info(
                "Ticket id did not resolve for merchant; opening a new ticket",
                extra={"requested_ticket_id": ticket_id, "merchant_id": merchant_id},
            )
        return self.create(merchant_id, first_message_content)


class TicketService:
    """Merchant-scoped reads and the plain status/priority updates."""

    def __init__(self, tickets: Optional[TicketStore] = None):
        if tickets is None:
            from repositories.factory import get_ticket_store

            tickets = get_ticket_store()
        self.tickets = tickets

    def get(self, ticket_id: str, merchant_id: Optional[str] = None) -> Ticket:
        if merchant_id is None:
            ticket = self.tickets.get(ticket_id)
        else:
            ticket = self.tickets.find_for_merchant(ticket_id, merchant_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    def list_for_merchant(self, merchant_id: str) -> List[Ticket]:
        return self.tickets.list_by_merchant(merchant_id)

    def touch(self, ticket_id: str, now: Optional[datetime] = None) -> Ticket:
        return self.tickets.update(ticket_id, {"updated_at": now or utc_now()})

    def update_status(
        self, ticket_id: str, status: TicketStatus, merchant_id: Optional[str] = None
    ) -> Ticket:
        self.get(ticket_id, merchant_id)
        changes = {"status": status, "updated_at": utc_now()}
        if status in DE_ESCALATING_STATUSES:
            changes["is_escalated"] = False
        ticket = self.tickets.update(ticket_id, changes)
        logger.info("Ticket status updated", extra={"ticket_id": ticket_id, "status": status.value})
        return ticket

    def update_priority(
        self, ticket_id: str, priority: TicketPriority, merchant_id: Optional[str] = None
    ) -> Ticket:
        self.get(ticket_id, merchant_id)
        ticket = self.tickets.update(ticket_id, {"priority": priority, "updated_at": utc_now()})
        logger.info(
            "Ticket priority updated", extra={"ticket_id": ticket_id, "priority": priority.value}
        )
        return ticket
