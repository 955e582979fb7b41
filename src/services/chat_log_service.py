"""Append-only chat log with full and delta reads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from models.message import Message
from repositories.base import ChatLogStore
from utils.logging_config import get_logger

logger = get_logger(__name__)


class ChatLog:
    """Ordered message sequence per ticket; entries are never edited or removed."""

    def __init__(self, store: Optional[ChatLogStore] = None):
        if store is None:
            from repositories.factory import get_chat_log_store

            store = get_chat_log_store()
        self.store = store

    def append(self, ticket_id: str, message: Message) -> None:
        self.store.append(ticket_id, message)
        logger.info(
            "Message appended",
            extra={
                "ticket_id": ticket_id,
                "role": message.role.value,
                "is_human": message.is_human,
            },
        )

    def read(
        self,
        ticket_id: str,
        since: Optional[datetime] = None,
        after_seq: Optional[int] = None,
    ) -> List[Message]:
        """
        Return entries in append order, each stamped with its ``seq``.

        ``since`` keeps entries with ``timestamp > since`` (strictly);
        ``after_seq`` keeps entries with ``seq > after_seq``. Both may be
        combined.
        """
        entries = [
            message.model_copy(update={"seq": index})
            for index, message in enumerate(self.store.read(ticket_id))
        ]
        if after_seq is not None:
            entries = [m for m in entries if m.seq > after_seq]
        if since is not None:
            entries = [m for m in entries if m.timestamp > since]
        return entries
