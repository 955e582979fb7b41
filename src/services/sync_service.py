"""
Read side used by the polling clients.

Full snapshots are the default contract: the client replaces its view with
the ticket and its whole chat history. Deltas filter the same log by
``after`` (strictly greater seq) or ``since`` (strictly later timestamp).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from models.ticket import Ticket
from services.chat_log_service import ChatLog
from services.ticket_service import TicketService


class PollingSync:
    def __init__(
        self,
        ticket_service: Optional[TicketService] = None,
        chat_log: Optional[ChatLog] = None,
    ):
        self.ticket_service = ticket_service or TicketService()
        self.chat_log = chat_log or ChatLog()

    def snapshot(self, ticket_id: str, merchant_id: Optional[str] = None) -> Dict[str, Any]:
        ticket = self.ticket_service.get(ticket_id, merchant_id)
        return self.render(ticket)

    def render(self, ticket: Ticket) -> Dict[str, Any]:
        return ticket.to_api(self.chat_log.read(ticket.id))

    def list_snapshots(self, merchant_id: str) -> List[Dict[str, Any]]:
        return [self.render(t) for t in self.ticket_service.list_for_merchant(merchant_id)]

    def render_many(self, tickets: List[Ticket]) -> List[Dict[str, Any]]:
        return [self.render(t) for t in tickets]

    def delta(
        self,
        ticket_id: str,
        merchant_id: Optional[str] = None,
        since: Optional[datetime] = None,
        after_seq: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Messages newer than the client's cursor plus the cursor to send next."""
        ticket = self.ticket_service.get(ticket_id, merchant_id)
        messages = self.chat_log.read(ticket.id, since=since, after_seq=after_seq)
        last_seq = messages[-1].seq if messages else after_seq
        return {
            "_id": ticket.id,
            "status": ticket.status.value,
            "is_escalated": ticket.is_escalated,
            "messages": [m.to_api() for m in messages],
            "last_seq": last_seq,
        }
