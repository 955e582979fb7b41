"""
Store selection for the running Lambda container.

DynamoDB when both tables are configured, otherwise one shared in-memory
backing so local runs still see a consistent ticket/chat-log pair.
"""

from __future__ import annotations

from typing import Optional

from repositories.base import ChatLogStore, TicketStore
from repositories.memory_repo import InMemoryChatLogStore, InMemoryTicketStore, MemoryTables
from utils.logging_config import get_logger
from utils.settings import get_settings

logger = get_logger(__name__)

_ticket_store: Optional[TicketStore] = None
_chat_log_store: Optional[ChatLogStore] = None


def _build() -> None:
    global _ticket_store, _chat_log_store
    settings = get_settings()
    if settings.uses_dynamodb:
        import boto3

        from repositories.dynamodb_repo import DynamoDbChatLogStore, DynamoDbTicketStore

        resource = boto3.resource("dynamodb", region_name=settings.aws_region)
        _ticket_store = DynamoDbTicketStore(
            settings.tickets_table, settings.chat_logs_table, resource=resource
        )
        _chat_log_store = DynamoDbChatLogStore(settings.chat_logs_table, resource=resource)
        return

    logger.warning(
        "TICKETS_TABLE/CHAT_LOGS_TABLE not set; using in-memory stores",
        extra={"environment": settings.environment},
    )
    tables = MemoryTables()
    _ticket_store = InMemoryTicketStore(tables)
    _chat_log_store = InMemoryChatLogStore(tables)


def get_ticket_store() -> TicketStore:
    if _ticket_store is None:
        _build()
    return _ticket_store


def get_chat_log_store() -> ChatLogStore:
    if _chat_log_store is None:
        _build()
    return _chat_log_store


def reset_stores() -> None:
    """Forget the cached stores (tests, configuration changes)."""
    global _ticket_store, _chat_log_store
    _ticket_store = None
    _chat_log_store = None
