"""
Runtime configuration for the ticketing Lambdas.

Values come from environment variables injected by the CDK stack; local runs
fall back to in-memory stores and an unset webhook.
"""

from dataclasses import dataclass, field
import os
from typing import Optional, Tuple

DEFAULT_WEBHOOK_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class Settings:
    """Application settings resolved once per Lambda container."""

    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # DynamoDB tables (None -> in-memory store)
    tickets_table: Optional[str] = None
    chat_logs_table: Optional[str] = None

    # Automation workflow
    webhook_ticket_url: Optional[str] = None
    webhook_resolve_ticket_url: Optional[str] = None
    webhook_timeout_seconds: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS

    # User directory
    database_url: Optional[str] = None
    db_secret_arn: Optional[str] = None
    admin_user_ids: Tuple[str, ...] = field(default_factory=tuple)
    admin_cache_ttl_seconds: int = 60

    @property
    def uses_dynamodb(self) -> bool:
        return bool(self.tickets_table and self.chat_logs_table)

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        admin_ids = tuple(
            item.strip()
            for item in os.environ.get("ADMIN_USER_IDS", "").split(",")
            if item.strip()
        )
        return cls(
            environment=os.environ.get("ENVIRONMENT", "dev"),
            aws_region=os.environ.get("AWS_REGION", "eu-west-2"),
            tickets_table=os.environ.get("TICKETS_TABLE") or None,
            chat_logs_table=os.environ.get("CHAT_LOGS_TABLE") or None,
            webhook_ticket_url=os.environ.get("WEBHOOK_TICKET_URL") or None,
            webhook_resolve_ticket_url=os.environ.get("WEBHOOK_RESOLVE_TICKET_URL") or None,
            webhook_timeout_seconds=float(
                os.environ.get("WEBHOOK_TIMEOUT_SECONDS", DEFAULT_WEBHOOK_TIMEOUT_SECONDS)
            ),
            database_url=os.environ.get("DATABASE_URL") or None,
            db_secret_arn=os.environ.get("DB_SECRET_ARN") or None,
            admin_user_ids=admin_ids,
            admin_cache_ttl_seconds=int(os.environ.get("ADMIN_CACHE_TTL_SECONDS", "60")),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the cached settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_environment()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
