"""Admin handlers. Every route checks the admin role before touching data."""

from __future__ import annotations

from typing import Optional

from models.response import ok
from models.ticket import AdminMessageRequest, ResolveRequest
from utils.error_handling import handler_failure
from utils.logging_config import get_logger, new_correlation_id
from utils.validators import parse_json_body, path_param, query_params

logger = get_logger(__name__)

_admin_service: Optional["AdminMessageService"] = None
_sync: Optional["PollingSync"] = None


def _get_admin_service():
    """Lazy-load AdminMessageService."""
    global _admin_service
    if _admin_service is None:
        from services.admin_service import AdminMessageService
        _admin_service = AdminMessageService()
    return _admin_service


def _get_sync():
    global _sync
    if _sync is None:
        from services.sync_service import PollingSync
        _sync = PollingSync()
    return _sync


def list_handler(event, context):
    """GET /admin/tickets?admin_id= -- escalated tickets, newest first."""
    correlation_id = new_correlation_id()
    try:
        admin_id = query_params(event).get("admin_id")
        tickets = _get_admin_service().list_escalated_tickets(admin_id)
        return ok(_get_sync().render_many(tickets), correlation_id)
    except Exception as exc:
        return handler_failure(logger, exc, "Escalated listing", correlation_id)


def message_handler(event, context):
    """POST /admin/tickets/{id}/message."""
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        request = AdminMessageRequest.model_validate(parse_json_body(event))
        service = _get_admin_service()
        message = service.send_human_message(ticket_id, request.admin_id, request.content)
        ticket = service.current_ticket(ticket_id)
        logger.info(
            "Admin message handled",
            extra={"correlation_id": correlation_id, "ticket_id": ticket_id, "admin_id": request.admin_id},
        )
        return ok(
            {
                "message": "Message sent successfully",
                "content": message.content,
                "timestamp": message.timestamp.isoformat(),
                "is_human": True,
                "status": ticket.status.value,
            },
            correlation_id,
        )
    except Exception as exc:
        return handler_failure(logger, exc, "Admin message", correlation_id)


def resolve_handler(event, context):
    """PATCH /admin/tickets/{id}/resolve."""
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        request = ResolveRequest.model_validate(parse_json_body(event))
        result = _get_admin_service().resolve_ticket(ticket_id, request.admin_id)
        return ok(
            {
                "_id": result.ticket.id,
                "status": result.ticket.status.value,
                "is_escalated": result.ticket.is_escalated,
            },
            correlation_id,
        )
    except Exception as exc:
        return handler_failure(logger, exc, "Resolve", correlation_id)
