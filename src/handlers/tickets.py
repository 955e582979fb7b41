"""Merchant-facing ticket handlers (listing, polling, status, escalation)."""

from __future__ import annotations

from typing import Optional

from models.response import ok
from models.ticket import EscalateRequest, PriorityUpdateRequest, StatusUpdateRequest
from utils.error_handling import ValidationError, handler_failure
from utils.logging_config import get_logger, new_correlation_id
from utils.validators import (
    ensure_present,
    parse_after,
    parse_json_body,
    parse_since,
    path_param,
    query_params,
)

logger = get_logger(__name__)

# Lazy-loaded services
_sync: Optional["PollingSync"] = None
_ticket_service: Optional["TicketService"] = None
_state_machine: Optional["EscalationStateMachine"] = None


def _get_sync():
    global _sync
    if _sync is None:
        from services.sync_service import PollingSync
        _sync = PollingSync()
    return _sync


def _get_ticket_service():
    global _ticket_service
    if _ticket_service is None:
        from services.ticket_service import TicketService
        _ticket_service = TicketService()
    return _ticket_service


def _get_state_machine():
    global _state_machine
    if _state_machine is None:
        from services.escalation_service import EscalationStateMachine
        _state_machine = EscalationStateMachine()
    return _state_machine


def list_handler(event, context):
    """GET /tickets?merchant_id= -- newest first, each with its chat history."""
    correlation_id = new_correlation_id()
    try:
        merchant_id = ensure_present(query_params(event).get("merchant_id"), "merchant_id")
        tickets = _get_sync().list_snapshots(merchant_id)
        logger.info(
            "Tickets listed",
            extra={"correlation_id": correlation_id, "merchant_id": merchant_id, "count": len(tickets)},
        )
        return ok(tickets, correlation_id)
    except Exception as exc:
        return handler_failure(logger, exc, "Ticket listing", correlation_id)


def get_handler(event, context):
    """GET /tickets/{id}?merchant_id= -- full snapshot for polling clients."""
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        merchant_id = ensure_present(query_params(event).get("merchant_id"), "merchant_id")
        return ok(_get_sync().snapshot(ticket_id, merchant_id), correlation_id)
    except Exception as exc:
        return handler_failure(logger, exc, "Ticket fetch", correlation_id)


def messages_handler(event, context):
    """
    GET /tickets/{id}/messages -- chat history, optionally a delta.

    The caller identifies as the owning merchant (``merchant_id``) or as an
    admin (``admin_id``). ``since`` and ``after`` narrow the result.
    """
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        params = query_params(event)
        merchant_id = params.get("merchant_id") or None
        admin_id = params.get("admin_id") or None
        if merchant_id is None and admin_id is None:
            raise ValidationError("merchant_id or admin_id is required")
        if merchant_id is None:
            _get_state_machine().directory.require_admin(admin_id)

        data = _get_sync().delta(
            ticket_id,
            merchant_id=merchant_id,
            since=parse_since(params.get("since")),
            after_seq=parse_after(params.get("after")),
        )
        return ok(data, correlation_id)
    except Exception as exc:
        return handler_failure(logger, exc, "Message polling", correlation_id)


def status_handler(event, context):
    """PATCH /tickets/{id}/status."""
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        request = StatusUpdateRequest.model_validate(parse_json_body(event))
        ticket = _get_ticket_service().update_status(ticket_id, request.status, request.merchant_id)
        return ok(_get_sync().render(ticket), correlation_id)
    except Exception as exc:
        return handler_failure(logger, exc, "Status update", correlation_id)


def priority_handler(event, context):
    """PATCH /tickets/{id}/priority."""
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        request = PriorityUpdateRequest.model_validate(parse_json_body(event))
        ticket = _get_ticket_service().update_priority(
            ticket_id, request.priority, request.merchant_id
        )
        return ok(_get_sync().render(ticket), correlation_id)
    except Exception as exc:
        return handler_failure(logger, exc, "Priority update", correlation_id)


def escalate_handler(event, context):
    """POST /tickets/{id}/escalate -- idempotent handoff to the human desk."""
    correlation_id = new_correlation_id()
    try:
        ticket_id = path_param(event)
        request = EscalateRequest.model_validate(parse_json_body(event))
        result = _get_state_machine().escalate(ticket_id, request.merchant_id)
        ticket = result.ticket
        logger.info(
            "Escalate request handled",
            extra={
                "correlation_id": correlation_id,
                "ticket_id": ticket.id,
                "changed": result.changed,
            },
        )
        return ok(
            {
                "_id": ticket.id,
                "status": ticket.status.value,
                "is_escalated": ticket.is_escalated,
                "escalated_at": ticket.escalated_at.isoformat() if ticket.escalated_at else None,
                "system_message": result.system_message.to_api() if result.system_message else None,
            },
            correlation_id,
        )
    except Exception as exc:
        return handler_failure(logger, exc, "Escalation", correlation_id)
