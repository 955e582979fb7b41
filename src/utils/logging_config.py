"""Structured logger setup shared across Lambdas."""

from contextvars import ContextVar
import logging
import os
from typing import Optional
import uuid

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "merchant-support-tickets"

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def new_correlation_id() -> str:
    """Start a request: generate its correlation id and bind it to log lines."""
    correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


class _CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = _correlation_id.get()
        return True


def get_logger(name: str) -> logging.Logger:
    """
    Return a JSON logger for ``name``, configuring it on first use.

    Every line carries the service, the environment and the current request's
    correlation id; other context (ticket_id, merchant_id, admin_id ...) is
    passed through ``extra`` so it can be filtered in CloudWatch Logs Insights.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
            static_fields={
                "service": SERVICE_NAME,
                "environment": os.environ.get("ENVIRONMENT", "dev"),
            },
        )
    )
    handler.addFilter(_CorrelationFilter())
    logger.addHandler(handler)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    return logger
