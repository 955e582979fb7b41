"""
Handler for POST /tickets/messages.

Synchronous: the workflow call is bounded by WEBHOOK_TIMEOUT_SECONDS and the
Lambda timeout is set above it.
"""

from __future__ import annotations

import time
from typing import Optional

from models.response import ok
from models.ticket import InboundMessageRequest
from utils.error_handling import handler_failure
from utils.logging_config import get_logger, new_correlation_id
from utils.validators import parse_json_body

logger = get_logger(__name__)

# Lazy-loaded service to reuse the HTTP session across warm invocations
_conversation_service: Optional["ConversationService"] = None


def _get_conversation_service():
    """Lazy-load ConversationService."""
    global _conversation_service
    if _conversation_service is None:
        from services.conversation_service import ConversationService
        _conversation_service = ConversationService()
    return _conversation_service


def lambda_handler(event, context):
    """Accept a merchant message and return the agent's reply."""
    start = time.perf_counter()
    correlation_id = new_correlation_id()

    try:
        request = InboundMessageRequest.model_validate(parse_json_body(event))
        result = _get_conversation_service().handle_merchant_message(request)

        logger.info(
            "Merchant message processed",
            extra={
                "correlation_id": correlation_id,
                "ticket_id": result.ticket_id,
                "merchant_id": request.merchant_id,
                "is_escalated": result.is_escalated,
                "processing_time_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return ok(result.model_dump(mode="json"), correlation_id)

    except Exception as exc:
        return handler_failure(logger, exc, "Merchant message", correlation_id)
