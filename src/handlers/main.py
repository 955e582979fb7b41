"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

One Lambda keeps warm caches (HTTP session, DB engine, boto3 resources) shared
across routes while the code stays organized by delegating to modules.
"""

import re
from typing import Callable, Pattern, Tuple

from utils.error_handling import json_response

from . import admin, health_check, ticket_messages, tickets

_ID = r"(?P<id>[^/]+)"


def _route(method: str, path: str, handler: Callable) -> Tuple[str, Pattern, Callable]:
    return method, re.compile(f"^{path}/?$"), handler


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    Matches ``METHOD /path`` against the route table and injects the captured
    path parameters before delegating.
    """
    http = event.get("requestContext", {}).get("http", {})
    method = http.get("method", "").upper()
    path = http.get("path", "") or event.get("rawPath", "")

    # Built per call so tests can monkeypatch handler functions.
    route_table = (
        _route("GET", "/health", health_check.lambda_handler),
        _route("POST", "/tickets/messages", ticket_messages.lambda_handler),
        _route("GET", "/tickets", tickets.list_handler),
        _route("GET", f"/tickets/{_ID}/messages", tickets.messages_handler),
        _route("GET", f"/tickets/{_ID}", tickets.get_handler),
        _route("PATCH", f"/tickets/{_ID}/status", tickets.status_handler),
        _route("PATCH", f"/tickets/{_ID}/priority", tickets.priority_handler),
        _route("POST", f"/tickets/{_ID}/escalate", tickets.escalate_handler),
        _route("GET", "/admin/tickets", admin.list_handler),
        _route("POST", f"/admin/tickets/{_ID}/message", admin.message_handler),
        _route("PATCH", f"/admin/tickets/{_ID}/resolve", admin.resolve_handler),
    )

    for route_method, pattern, handler in route_table:
        if route_method != method:
            continue
        match = pattern.match(path)
        if match:
            params = dict(event.get("pathParameters") or {})
            params.update(match.groupdict())
            return handler({**event, "pathParameters": params}, context)

    route_key = f"{method} {path}"
    return json_response(
        404,
        {
            "success": False,
            "data": None,
            "error": {"message": "Route not found", "code": "NOT_FOUND", "details": {"route": route_key}},
            "correlation_id": None,
        },
    )
