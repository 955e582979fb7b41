"""
Environment-specific configuration settings for the CDK app.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os
from typing import Optional


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Automation workflow endpoints (injected into the Lambda environment)
    webhook_ticket_url: str = ""
    webhook_resolve_ticket_url: str = ""
    webhook_timeout_seconds: int = 10

    # User directory: RDS secret owned by the auth service, or a static list
    user_directory_secret_arn: Optional[str] = None
    admin_user_ids: str = ""
    admin_cache_ttl_seconds: int = 60

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30
    log_level: str = "INFO"

    @property
    def is_prod(self) -> bool:
        return self.environment == "prod"

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        common = dict(
            environment=env,
            aws_region=os.environ.get("AWS_REGION", "eu-west-2"),
            webhook_ticket_url=os.environ.get("WEBHOOK_TICKET_URL", ""),
            webhook_resolve_ticket_url=os.environ.get("WEBHOOK_RESOLVE_TICKET_URL", ""),
            webhook_timeout_seconds=int(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", "10")),
            user_directory_secret_arn=os.environ.get("USER_DIRECTORY_SECRET_ARN") or None,
            admin_user_ids=os.environ.get("ADMIN_USER_IDS", ""),
        )

        # Production overrides
        if env == "prod":
            return cls(**common, lambda_memory_mb=1024, lambda_timeout_seconds=60)

        return cls(**common)
