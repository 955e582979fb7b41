"""DynamoDB repositories for tickets and their chat logs."""

from __future__ import annotations

from decimal import Decimal
import json
from typing import Any, Dict, Iterable, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from pydantic_core import to_jsonable_python

from models.message import Message, utc_now
from models.ticket import Ticket, TicketStatus
from repositories.base import ChatLogStore, TicketStore
from utils.error_handling import NotFoundError, PersistenceError
from utils.logging_config import get_logger

logger = get_logger(__name__)

MERCHANT_INDEX = "merchant_id-updated_at-index"
CONDITION_FAILED = "ConditionalCheckFailedException"


def _to_dynamo(value: Any) -> Any:
    """Make a value storable: JSON-safe, with floats as Decimal."""
    return json.loads(json.dumps(to_jsonable_python(value)), parse_float=Decimal)


def _from_dynamo(value: Any) -> Any:
    """Undo the Decimal round trip on everything read back."""
    if isinstance(value, list):
        return [_from_dynamo(item) for item in value]
    if isinstance(value, dict):
        return {key: _from_dynamo(item) for key, item in value.items()}
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class DynamoDbTicketStore(TicketStore):
    """Tickets table keyed by ``id`` with a merchant GSI."""

    backend = "dynamodb"

    def __init__(self, table_name: str, chat_logs_table_name: str, resource=None):
        self.resource = resource or boto3.resource("dynamodb")
        self.table = self.resource.Table(table_name)
        self.table_name = table_name
        self.chat_logs_table_name = chat_logs_table_name
        self.client = self.resource.meta.client
        self._serializer = TypeSerializer()

    def _serialize(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {key: self._serializer.serialize(value) for key, value in item.items()}

    def create(self, ticket: Ticket) -> Ticket:
        """Write the ticket and its empty chat log in one transaction."""
        chat_log = {
            "ticket_id": ticket.id,
            "messages": [],
            "created_at": ticket.created_at.isoformat(),
            "updated_at": ticket.created_at.isoformat(),
        }
        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.table_name,
                            "Item": self._serialize(_to_dynamo(ticket.to_storage())),
                            "ConditionExpression": "attribute_not_exists(#id)",
                            "ExpressionAttributeNames": {"#id": "id"},
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.chat_logs_table_name,
                            "Item": self._serialize(chat_log),
                            "ConditionExpression": "attribute_not_exists(#tid)",
                            "ExpressionAttributeNames": {"#tid": "ticket_id"},
                        }
                    },
                ]
            )
        except ClientError as exc:
            logger.error(
                "Ticket creation failed",
                extra={"ticket_id": ticket.id, "error": str(exc)},
            )
            raise PersistenceError("Failed to create ticket") from exc
        return ticket

    def get(self, ticket_id: str) -> Optional[Ticket]:
        try:
            resp = self.table.get_item(Key={"id": ticket_id}, ConsistentRead=True)
        except ClientError as exc:
            raise PersistenceError("Failed to load ticket") from exc
        item = resp.get("Item")
        return Ticket.model_validate(_from_dynamo(item)) if item else None

    def list_by_merchant(self, merchant_id: str) -> List[Ticket]:
        query = {
            "IndexName": MERCHANT_INDEX,
            "KeyConditionExpression": Key("merchant_id").eq(merchant_id),
            "ScanIndexForward": False,
        }
        items = self._paginate(self.table.query, query)
        return self._newest_first(items)

    def list_escalated(self) -> List[Ticket]:
        scan = {"FilterExpression": Attr("is_escalated").eq(True), "ConsistentRead": True}
        items = self._paginate(self.table.scan, scan)
        return self._newest_first(items)

    def update(self, ticket_id: str, changes: Dict[str, Any]) -> Ticket:
        ticket = self._conditional_update(ticket_id, changes)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    def compare_and_set(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        *,
        status_in: Optional[Iterable[TicketStatus]] = None,
        is_escalated: Optional[bool] = None,
    ) -> Optional[Ticket]:
        return self._conditional_update(
            ticket_id, changes, status_in=status_in, is_escalated=is_escalated
        )

    def _conditional_update(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        status_in: Optional[Iterable[TicketStatus]] = None,
        is_escalated: Optional[bool] = None,
    ) -> Optional[Ticket]:
        if not changes:
            raise ValueError("changes must not be empty")

        names: Dict[str, str] = {"#id": "id"}
        values: Dict[str, Any] = {}
        assignments = []
        for index, (attribute, value) in enumerate(changes.items()):
            names[f"#c{index}"] = attribute
            values[f":c{index}"] = _to_dynamo(value)
            assignments.append(f"#c{index} = :c{index}")

        conditions = ["attribute_exists(#id)"]
        if status_in is not None:
            names["#st"] = "status"
            placeholders = []
            for index, status in enumerate(status_in):
                values[f":s{index}"] = TicketStatus(status).value
                placeholders.append(f":s{index}")
            conditions.append(f"#st IN ({', '.join(placeholders)})")
        if is_escalated is not None:
            names["#esc"] = "is_escalated"
            values[":esc"] = is_escalated
            conditions.append("#esc = :esc")

        try:
            resp = self.table.update_item(
                Key={"id": ticket_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression=" AND ".join(conditions),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _error_code(exc) == CONDITION_FAILED:
                return None
            logger.error("Ticket update failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise PersistenceError("Failed to update ticket") from exc
        return Ticket.model_validate(_from_dynamo(resp["Attributes"]))

    def _paginate(self, operation, kwargs: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        try:
            while True:
                resp = operation(**kwargs)
                items.extend(resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs = {**kwargs, "ExclusiveStartKey": last_key}
        except ClientError as exc:
            raise PersistenceError("Failed to list tickets") from exc

    @staticmethod
    def _newest_first(items: List[Dict[str, Any]]) -> List[Ticket]:
        tickets = [Ticket.model_validate(_from_dynamo(item)) for item in items]
        return sorted(tickets, key=lambda t: t.updated_at, reverse=True)


class DynamoDbChatLogStore(ChatLogStore):
    """One item per ticket holding the ``messages`` list."""

    def __init__(self, table_name: str, resource=None):
        self.resource = resource or boto3.resource("dynamodb")
        self.table = self.resource.Table(table_name)

    def append(self, ticket_id: str, message: Message) -> None:
        """Server-side list_append, so concurrent writers never overwrite each other."""
        try:
            self.table.update_item(
                Key={"ticket_id": ticket_id},
                UpdateExpression="SET #msgs = list_append(#msgs, :new), #upd = :now",
                ConditionExpression="attribute_exists(#tid)",
                ExpressionAttributeNames={
                    "#msgs": "messages",
                    "#upd": "updated_at",
                    "#tid": "ticket_id",
                },
                ExpressionAttributeValues={
                    ":new": [_to_dynamo(message.to_storage())],
                    ":now": utc_now().isoformat(),
                },
            )
        except ClientError as exc:
            if _error_code(exc) == CONDITION_FAILED:
                raise NotFoundError("Chat history not found") from exc
            logger.error("Chat log append failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise PersistenceError("Failed to append message") from exc

    def read(self, ticket_id: str) -> List[Message]:
        try:
            resp = self.table.get_item(Key={"ticket_id": ticket_id}, ConsistentRead=True)
        except ClientError as exc:
            raise PersistenceError("Failed to load chat history") from exc
        item = resp.get("Item")
        if not item:
            raise NotFoundError("Chat history not found")
        return [Message.model_validate(_from_dynamo(m)) for m in item.get("messages", [])]
