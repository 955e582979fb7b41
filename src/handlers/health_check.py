"""Lightweight health check handler."""

from datetime import datetime, timezone

from utils.error_handling import json_response
from utils.settings import get_settings


def lambda_handler(event, context):
    """Return a 200 response describing how this container is wired."""
    settings = get_settings()
    return json_response(
        200,
        {
            "status": "ok",
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "store_backend": "dynamodb" if settings.uses_dynamodb else "memory",
            "webhook_configured": bool(settings.webhook_ticket_url),
        },
    )
