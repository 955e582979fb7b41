"""Request parsing helpers shared by the HTTP handlers."""

import base64
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from utils.error_handling import ValidationError


def ensure_present(value: Any, field: str) -> Any:
    """Raise ValidationError if value is falsy."""
    if value in (None, "", []):
        raise ValidationError(f"{field} is required")
    return value


def parse_json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the API Gateway body (optionally base64) into a dict."""
    raw = event.get("body")
    if not raw:
        return {}
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def query_params(event: Dict[str, Any]) -> Dict[str, str]:
    return event.get("queryStringParameters") or {}


def path_param(event: Dict[str, Any], name: str = "id") -> str:
    value = (event.get("pathParameters") or {}).get(name)
    return ensure_present(value, name)


def parse_since(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO8601 ``since`` filter; naive values are taken as UTC."""
    if value in (None, ""):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError("since must be an ISO8601 timestamp") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_after(value: Optional[str]) -> Optional[int]:
    """Parse the ``after`` sequence cursor used by delta polling."""
    if value in (None, ""):
        return None
    try:
        cursor = int(value)
    except ValueError as exc:
        raise ValidationError("after must be an integer sequence number") from exc
    if cursor < -1:
        raise ValidationError("after must be >= -1")
    return cursor
