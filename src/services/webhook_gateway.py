"""
Outbound adapter to the external automation workflow.

The workflow's reply shape is not fixed across versions, so all tolerance
lives in ``normalize_agent_response``: a pure function over (status, body)
with a prioritized alias table per field. ``WebhookGateway.invoke`` never
raises; transport failures and timeouts degrade to a fallback reply.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from models.agent import NormalizedAgentReply, WebhookOutcome
from utils.error_handling import UpstreamError
from utils.logging_config import get_logger
from utils.settings import get_settings

logger = get_logger(__name__)

CONNECTION_FALLBACK = "I'm having trouble connecting to the support system. Please try again."
EMPTY_BODY_FALLBACK = "Your request is being processed. Please wait a moment."
DEFAULT_AGENT_MESSAGE = "Your request has been received."

RAW_TEXT_MAX_LENGTH = 2000
LOG_PREVIEW_LENGTH = 500

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "agent_message": ("agent_message", "agentMessage", "message", "response"),
    "cards": ("cards",),
    "tools_used": ("tools_used", "toolsUsed"),
    "actions_taken": ("actions_taken", "actionsTaken"),
    "reasoning": ("reasoning",),
    "confidence_score": ("confidence_score", "confidenceScore"),
    "complexity_score": ("complexity_score", "complexityScore"),
}


def _first_present(data: Dict[str, Any], field: str, accept=lambda value: True) -> Any:
    for key in FIELD_ALIASES[field]:
        value = data.get(key)
        if value is None or value == "":
            continue
        if accept(value):
            return value
    return None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _unwrap(data: Any) -> Tuple[Any, Optional[str]]:
    """Peel the array and ``output`` wrappers the workflow may add."""
    if isinstance(data, list):
        data = next((item for item in data if isinstance(item, dict)), {})
    if not isinstance(data, dict):
        return {}, None
    output = data.get("output")
    if isinstance(output, dict) and output:
        return output, None
    if isinstance(output, str) and output.strip():
        return data, output
    return data, None


def _from_json(data: Any) -> NormalizedAgentReply:
    payload, output_text = _unwrap(data)
    message = _first_present(payload, "agent_message", accept=lambda v: isinstance(v, str))
    cards = _as_list(_first_present(payload, "cards"))
    return NormalizedAgentReply(
        agent_message=message or output_text or DEFAULT_AGENT_MESSAGE,
        cards=[card for card in cards if isinstance(card, dict)],
        tools_used=[str(t) for t in _as_list(_first_present(payload, "tools_used"))],
        actions_taken=[str(a) for a in _as_list(_first_present(payload, "actions_taken"))],
        reasoning=_first_present(payload, "reasoning"),
        confidence_score=_as_score(_first_present(payload, "confidence_score")),
        complexity_score=_as_score(_first_present(payload, "complexity_score")),
        outcome=WebhookOutcome.PARSED,
    )


def normalize_agent_response(status_code: int, body: Optional[str]) -> NormalizedAgentReply:
    """Map any workflow response onto a NormalizedAgentReply."""
    if not 200 <= status_code < 300:
        return NormalizedAgentReply(
            agent_message=CONNECTION_FALLBACK, outcome=WebhookOutcome.HTTP_ERROR
        )

    text = body or ""
    if not text.strip():
        return NormalizedAgentReply(
            agent_message=EMPTY_BODY_FALLBACK, outcome=WebhookOutcome.EMPTY_BODY
        )

    try:
        data = json.loads(text)
    except ValueError:
        if 0 < len(text) < RAW_TEXT_MAX_LENGTH:
            return NormalizedAgentReply(agent_message=text, outcome=WebhookOutcome.RAW_TEXT)
        return NormalizedAgentReply(
            agent_message=DEFAULT_AGENT_MESSAGE, outcome=WebhookOutcome.UNPARSEABLE
        )
    return _from_json(data)


def transport_failure_reply() -> NormalizedAgentReply:
    return NormalizedAgentReply(
        agent_message=CONNECTION_FALLBACK, outcome=WebhookOutcome.TRANSPORT_ERROR
    )


class WebhookGateway:
    """Blocking POSTs to the workflow with a bounded timeout."""

    def __init__(
        self,
        url: Optional[str] = None,
        resolve_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.url = url if url is not None else settings.webhook_ticket_url
        self.resolve_url = resolve_url if resolve_url is not None else settings.webhook_resolve_ticket_url
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.webhook_timeout_seconds
        )
        # Reused across warm invocations for keep-alive.
        self.session = session or requests.Session()

    def invoke(self, ticket_id: str, merchant_id: str, content: str) -> NormalizedAgentReply:
        payload = {"_id": ticket_id, "merchant_id": merchant_id, "message": {"content": content}}
        start = time.perf_counter()
        try:
            status_code, body = self._post(self.url, payload)
        except UpstreamError as exc:
            reply = transport_failure_reply()
            logger.warning(
                "Webhook call failed; using fallback reply",
                extra={"ticket_id": ticket_id, "error": str(exc)},
            )
        else:
            reply = normalize_agent_response(status_code, body)
            logger.info(
                "Webhook reply normalized",
                extra={
                    "ticket_id": ticket_id,
                    "status_code": status_code,
                    "response_length": len(body or ""),
                    "outcome": reply.outcome.value,
                    "preview": (body or "")[:LOG_PREVIEW_LENGTH],
                },
            )
        finally:
            logger.info(
                "Webhook latency captured",
                extra={
                    "ticket_id": ticket_id,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )
        return reply

    def notify_resolved(self, ticket_id: str, merchant_id: str, admin_id: str) -> bool:
        """Best-effort resolution notification; returns whether it was delivered."""
        if not self.resolve_url:
            return False
        payload = {
            "_id": ticket_id,
            "merchant_id": merchant_id,
            "admin_id": admin_id,
            "status": "resolved",
        }
        try:
            status_code, _ = self._post(self.resolve_url, payload)
        except UpstreamError as exc:
            logger.warning(
                "Resolve notification failed", extra={"ticket_id": ticket_id, "error": str(exc)}
            )
            return False
        delivered = 200 <= status_code < 300
        if not delivered:
            logger.warning(
                "Resolve notification rejected",
                extra={"ticket_id": ticket_id, "status_code": status_code},
            )
        return delivered

    def _post(self, url: Optional[str], payload: Dict[str, Any]) -> Tuple[int, str]:
        if not url:
            raise UpstreamError("Webhook URL is not configured")
        logger.info("Sending to webhook", extra={"url": url, "ticket_id": payload.get("_id")})
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise UpstreamError(f"{type(exc).__name__}: {exc}") from exc
        return response.status_code, response.text
