"""
Main CDK Stack for the merchant support ticketing service.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct
from infrastructure.config.settings import Settings


class MerchantSupportStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "merchant-support-tickets")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "support-automation")
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
        )

        lambda_environment = {
            "TICKETS_TABLE": data_construct.tickets_table.table_name,
            "CHAT_LOGS_TABLE": data_construct.chat_logs_table.table_name,
            "WEBHOOK_TICKET_URL": settings.webhook_ticket_url,
            "WEBHOOK_RESOLVE_TICKET_URL": settings.webhook_resolve_ticket_url,
            "WEBHOOK_TIMEOUT_SECONDS": str(settings.webhook_timeout_seconds),
            "ADMIN_USER_IDS": settings.admin_user_ids,
            "ADMIN_CACHE_TTL_SECONDS": str(settings.admin_cache_ttl_seconds),
            "LOG_LEVEL": settings.log_level,
        }
        if settings.user_directory_secret_arn:
            lambda_environment["DB_SECRET_ARN"] = settings.user_directory_secret_arn

        # 2) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            lambda_environment=lambda_environment,
            webhook_timeout_seconds=settings.webhook_timeout_seconds,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # Permissions for the API Lambda.
        data_construct.tickets_table.grant_read_write_data(api_construct.main_lambda)
        data_construct.chat_logs_table.grant_read_write_data(api_construct.main_lambda)
        if settings.user_directory_secret_arn:
            directory_secret = secretsmanager.Secret.from_secret_complete_arn(
                self, "UserDirectorySecret", settings.user_directory_secret_arn
            )
            directory_secret.grant_read(api_construct.main_lambda)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "TicketsTable", value=data_construct.tickets_table.table_name)
        CfnOutput(self, "ChatLogsTable", value=data_construct.chat_logs_table.table_name)
