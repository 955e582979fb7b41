"""
Infrastructure tests.

Settings are plain Python; the data layer is synthesized with
aws_cdk.assertions when the CDK toolchain (aws-cdk-lib + node) is present.
"""

import shutil

import pytest

from infrastructure.config.settings import Settings


def test_settings_dev_defaults(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.setenv("WEBHOOK_TICKET_URL", "https://automation.example.test/hook")
    settings = Settings.from_environment()
    assert settings.is_prod is False
    assert settings.webhook_ticket_url == "https://automation.example.test/hook"
    assert settings.lambda_timeout_seconds > settings.webhook_timeout_seconds


def test_settings_prod_overrides(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    settings = Settings.from_environment()
    assert settings.is_prod is True
    assert settings.lambda_memory_mb == 1024
    assert settings.lambda_timeout_seconds == 60


@pytest.mark.skipif(shutil.which("node") is None, reason="CDK synthesis needs node")
def test_data_layer_tables():
    cdk = pytest.importorskip("aws_cdk")
    from aws_cdk.assertions import Template

    from infrastructure.constructs.data_layer import MERCHANT_INDEX, DataLayerConstruct

    app = cdk.App()
    stack = cdk.Stack(app, "DataLayerTest")
    DataLayerConstruct(stack, "DataLayer", environment="dev")
    template = Template.from_stack(stack)

    template.resource_count_is("AWS::DynamoDB::Table", 2)
    template.has_resource_properties(
        "AWS::DynamoDB::Table",
        {
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": MERCHANT_INDEX,
                    "KeySchema": [
                        {"AttributeName": "merchant_id", "KeyType": "HASH"},
                        {"AttributeName": "updated_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
        },
    )
    template.has_resource_properties(
        "AWS::DynamoDB::Table",
        {"KeySchema": [{"AttributeName": "ticket_id", "KeyType": "HASH"}]},
    )
