"""
Process-local ticket and chat log stores.

Used when the DynamoDB tables are not configured (local runs, tests). Both
stores share one set of tables behind one lock so ticket creation and log
appends have the same atomicity the DynamoDB adapter provides.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional

from models.message import Message
from models.ticket import Ticket, TicketStatus
from repositories.base import ChatLogStore, TicketStore
from utils.error_handling import NotFoundError, PersistenceError


@dataclass
class MemoryTables:
    tickets: Dict[str, Ticket] = field(default_factory=dict)
    chat_logs: Dict[str, List[Message]] = field(default_factory=dict)
    lock: RLock = field(default_factory=RLock)


def _newest_first(tickets: Iterable[Ticket]) -> List[Ticket]:
    return sorted(tickets, key=lambda t: t.updated_at, reverse=True)


class InMemoryTicketStore(TicketStore):
    backend = "memory"

    def __init__(self, tables: Optional[MemoryTables] = None):
        self.tables = tables or MemoryTables()

    def create(self, ticket: Ticket) -> Ticket:
        with self.tables.lock:
            if ticket.id in self.tables.tickets:
                raise PersistenceError(f"Ticket {ticket.id} already exists")
            self.tables.tickets[ticket.id] = ticket
            self.tables.chat_logs[ticket.id] = []
        return ticket

    def get(self, ticket_id: str) -> Optional[Ticket]:
        with self.tables.lock:
            return self.tables.tickets.get(ticket_id)

    def list_by_merchant(self, merchant_id: str) -> List[Ticket]:
        with self.tables.lock:
            return _newest_first(
                t for t in self.tables.tickets.values() if t.merchant_id == merchant_id
            )

    def list_escalated(self) -> List[Ticket]:
        with self.tables.lock:
            return _newest_first(t for t in self.tables.tickets.values() if t.is_escalated)

    def update(self, ticket_id: str, changes: Dict[str, Any]) -> Ticket:
        with self.tables.lock:
            current = self.tables.tickets.get(ticket_id)
            if current is None:
                raise NotFoundError("Ticket not found")
            updated = current.model_copy(update=changes)
            self.tables.tickets[ticket_id] = updated
            return updated

    def compare_and_set(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        *,
        status_in: Optional[Iterable[TicketStatus]] = None,
        is_escalated: Optional[bool] = None,
    ) -> Optional[Ticket]:
        allowed = set(status_in) if status_in is not None else None
        with self.tables.lock:
            current = self.tables.tickets.get(ticket_id)
            if current is None:
                return None
            if allowed is not None and current.status not in allowed:
                return None
            if is_escalated is not None and current.is_escalated != is_escalated:
                return None
            updated = current.model_copy(update=changes)
            self.tables.tickets[ticket_id] = updated
            return updated


class InMemoryChatLogStore(ChatLogStore):
    def __init__(self, tables: Optional[MemoryTables] = None):
        self.tables = tables or MemoryTables()

    def append(self, ticket_id: str, message: Message) -> None:
        with self.tables.lock:
            log = self.tables.chat_logs.get(ticket_id)
            if log is None:
                raise NotFoundError("Chat history not found")
            log.append(message.model_copy(update={"seq": None}))

    def read(self, ticket_id: str) -> List[Message]:
        with self.tables.lock:
            log = self.tables.chat_logs.get(ticket_id)
            if log is None:
                raise NotFoundError("Chat history not found")
            return list(log)
