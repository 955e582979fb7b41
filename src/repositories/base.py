"""Repository capabilities the services depend on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from models.message import Message
from models.ticket import Ticket, TicketStatus


class TicketStore(ABC):
    """Durable ticket records."""

    backend = "abstract"

    @abstractmethod
    def create(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket together with its empty chat log."""

    @abstractmethod
    def get(self, ticket_id: str) -> Optional[Ticket]:
        """Return the ticket or None."""

    @abstractmethod
    def list_by_merchant(self, merchant_id: str) -> List[Ticket]:
        """Tickets of one merchant, most recently updated first."""

    @abstractmethod
    def list_escalated(self) -> List[Ticket]:
        """Tickets with ``is_escalated`` set, most recently updated first."""

    @abstractmethod
    def update(self, ticket_id: str, changes: Dict[str, Any]) -> Ticket:
        """Apply changes unconditionally; raise NotFoundError if missing."""

    @abstractmethod
    def compare_and_set(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        *,
        status_in: Optional[Iterable[TicketStatus]] = None,
        is_escalated: Optional[bool] = None,
    ) -> Optional[Ticket]:
        """
        Apply changes only if the stored ticket matches the guard.

        Returns the updated ticket, or None when the ticket is missing or the
        guard does not hold. The check and the write happen atomically.
        """

    def find_for_merchant(self, ticket_id: str, merchant_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if ticket is None or ticket.merchant_id != merchant_id:
            return None
        return ticket


class ChatLogStore(ABC):
    """Append-only message sequences keyed by ticket id."""

    @abstractmethod
    def append(self, ticket_id: str, message: Message) -> None:
        """Atomically add one message to the end of the log."""

    @abstractmethod
    def read(self, ticket_id: str) -> List[Message]:
        """Full log in append order; raise NotFoundError if it does not exist."""
