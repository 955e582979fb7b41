"""
API layer construct: shared Lambda + HTTP API routes.

A single Lambda keeps warm caches and reduces cold start costs.
Uses Docker bundling for dependencies (runs in CI/CD pipeline).
"""

from typing import Dict

from aws_cdk import (
    BundlingOptions,
    Duration,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct

# Method/path pairs served by handlers.main.
ROUTES = (
    (apigw.HttpMethod.GET, "/health"),
    (apigw.HttpMethod.POST, "/tickets/messages"),
    (apigw.HttpMethod.GET, "/tickets"),
    (apigw.HttpMethod.GET, "/tickets/{id}"),
    (apigw.HttpMethod.GET, "/tickets/{id}/messages"),
    (apigw.HttpMethod.PATCH, "/tickets/{id}/status"),
    (apigw.HttpMethod.PATCH, "/tickets/{id}/priority"),
    (apigw.HttpMethod.POST, "/tickets/{id}/escalate"),
    (apigw.HttpMethod.GET, "/admin/tickets"),
    (apigw.HttpMethod.POST, "/admin/tickets/{id}/message"),
    (apigw.HttpMethod.PATCH, "/admin/tickets/{id}/resolve"),
)

# Headroom above the webhook timeout for storage calls around it.
WEBHOOK_HEADROOM_SECONDS = 10


class ApiLayerConstruct(Construct):
    """Expose ticketing endpoints via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        lambda_environment: Dict[str, str],
        webhook_timeout_seconds: int = 10,
        lambda_memory_mb: int = 512,
        lambda_timeout_seconds: int = 30,
    ) -> None:
        super().__init__(scope, construct_id)

        # Bundle Lambda code with dependencies using Docker (works in CI/CD)
        bundled_code = _lambda.Code.from_asset(
            "src",
            bundling=BundlingOptions(
                image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                command=[
                    "bash", "-c",
                    "pip install -r requirements-lambda.txt -t /asset-output && "
                    "cp -r . /asset-output"
                ],
            ),
        )

        # The webhook call is synchronous; the invocation must outlive it.
        timeout = max(lambda_timeout_seconds, webhook_timeout_seconds + WEBHOOK_HEADROOM_SECONDS)

        # No VPC: the Lambda calls the external workflow over the internet.
        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.main.lambda_handler",
            code=bundled_code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(timeout),
            architecture=_lambda.Architecture.X86_64,
            environment={"ENVIRONMENT": environment, **lambda_environment},
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        # HTTP API with minimal latency and low cost.
        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"merchant-support-api-{environment}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[apigw.CorsHttpMethod.ANY],
            ),
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        for method, path in ROUTES:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
            )
