"""
DynamoDB repositories against moto.

Run with: pytest tests/unit/test_dynamodb_repo.py -v
"""

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from models.message import Message
from models.ticket import Ticket, TicketStatus
from repositories.dynamodb_repo import MERCHANT_INDEX, DynamoDbChatLogStore, DynamoDbTicketStore
from utils.error_handling import NotFoundError

TICKETS = "test-tickets"
CHAT_LOGS = "test-chat-logs"


@pytest.fixture
def dynamodb():
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name="eu-west-2")
        resource.create_table(
            TableName=TICKETS,
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "id", "AttributeType": "S"},
                {"AttributeName": "merchant_id", "AttributeType": "S"},
                {"AttributeName": "updated_at", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": MERCHANT_INDEX,
                    "KeySchema": [
                        {"AttributeName": "merchant_id", "KeyType": "HASH"},
                        {"AttributeName": "updated_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        resource.create_table(
            TableName=CHAT_LOGS,
            KeySchema=[{"AttributeName": "ticket_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "ticket_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield resource


@pytest.fixture
def stores(dynamodb):
    return (
        DynamoDbTicketStore(TICKETS, CHAT_LOGS, resource=dynamodb),
        DynamoDbChatLogStore(CHAT_LOGS, resource=dynamodb),
    )


def _ticket(merchant_id="MERCH-1", **fields):
    return Ticket(ticket_number="TKT-ABC-1234", merchant_id=merchant_id, **fields)


def test_create_writes_ticket_and_empty_log(stores):
    tickets, logs = stores
    ticket = tickets.create(_ticket(title="Hello"))

    loaded = tickets.get(ticket.id)
    assert loaded == ticket
    assert logs.read(ticket.id) == []


def test_get_missing_returns_none(stores):
    tickets, _ = stores
    assert tickets.get("missing") is None


def test_append_and_read_preserve_order_and_floats(stores):
    tickets, logs = stores
    ticket = tickets.create(_ticket())
    logs.append(ticket.id, Message.from_merchant("one"))
    logs.append(
        ticket.id,
        Message(
            role="assistant",
            content="two",
            cards=[{"type": "link", "weight": 0.5}],
            confidence_score=0.87,
            complexity_score=2,
            reasoning={"steps": ["a", "b"]},
        ),
    )

    entries = logs.read(ticket.id)

    assert [m.content for m in entries] == ["one", "two"]
    assert entries[1].confidence_score == 0.87
    assert entries[1].complexity_score == 2.0
    assert entries[1].cards == [{"type": "link", "weight": 0.5}]
    assert entries[1].reasoning == {"steps": ["a", "b"]}


def test_append_to_missing_log_raises(stores):
    _, logs = stores
    with pytest.raises(NotFoundError):
        logs.append("missing", Message.from_merchant("x"))


def test_read_missing_log_raises(stores):
    _, logs = stores
    with pytest.raises(NotFoundError):
        logs.read("missing")


def test_update_and_missing_update(stores):
    tickets, _ = stores
    ticket = tickets.create(_ticket())

    updated = tickets.update(ticket.id, {"status": TicketStatus.CLOSED, "assigned_agent_id": "ADMIN-1"})
    assert updated.status == TicketStatus.CLOSED
    assert updated.assigned_agent_id == "ADMIN-1"

    with pytest.raises(NotFoundError):
        tickets.update("missing", {"status": TicketStatus.CLOSED})


def test_compare_and_set_guards(stores):
    tickets, _ = stores
    ticket = tickets.create(_ticket())
    now = datetime.now(timezone.utc)
    changes = {"status": TicketStatus.ESCALATED, "is_escalated": True, "escalated_at": now}

    first = tickets.compare_and_set(
        ticket.id, changes, status_in=(TicketStatus.OPEN, TicketStatus.IN_PROGRESS), is_escalated=False
    )
    second = tickets.compare_and_set(
        ticket.id, changes, status_in=(TicketStatus.OPEN, TicketStatus.IN_PROGRESS), is_escalated=False
    )

    assert first is not None
    assert first.status == TicketStatus.ESCALATED
    assert first.escalated_at == now
    assert second is None
    assert tickets.compare_and_set("missing", changes) is None


def test_listing_by_merchant_and_escalated(stores):
    tickets, _ = stores
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    older = tickets.create(_ticket(updated_at=base))
    newer = tickets.create(_ticket(updated_at=base + timedelta(hours=1), is_escalated=True))
    tickets.create(_ticket(merchant_id="MERCH-2"))

    assert [t.id for t in tickets.list_by_merchant("MERCH-1")] == [newer.id, older.id]
    assert [t.id for t in tickets.list_escalated()] == [newer.id]
