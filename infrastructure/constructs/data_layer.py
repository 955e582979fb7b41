"""
Data layer construct: DynamoDB tickets table + chat log table.
"""

from aws_cdk import (
    RemovalPolicy,
    aws_dynamodb as dynamodb,
)
from constructs import Construct

MERCHANT_INDEX = "merchant_id-updated_at-index"


class DataLayerConstruct(Construct):
    """Provision the ticket and chat log tables."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
    ) -> None:
        super().__init__(scope, construct_id)

        is_prod = environment == "prod"
        removal_policy = RemovalPolicy.RETAIN if is_prod else RemovalPolicy.DESTROY

        # Tickets keyed by internal id; merchant listing goes through the GSI.
        self.tickets_table = dynamodb.Table(
            self,
            "Tickets",
            partition_key=dynamodb.Attribute(name="id", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=is_prod,
            removal_policy=removal_policy,
        )
        self.tickets_table.add_global_secondary_index(
            index_name=MERCHANT_INDEX,
            partition_key=dynamodb.Attribute(
                name="merchant_id", type=dynamodb.AttributeType.STRING
            ),
            sort_key=dynamodb.Attribute(name="updated_at", type=dynamodb.AttributeType.STRING),
            projection_type=dynamodb.ProjectionType.ALL,
        )

        # One item per ticket; messages are appended with list_append.
        self.chat_logs_table = dynamodb.Table(
            self,
            "ChatLogs",
            partition_key=dynamodb.Attribute(
                name="ticket_id", type=dynamodb.AttributeType.STRING
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=is_prod,
            removal_policy=removal_policy,
        )
