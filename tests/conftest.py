"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import health_check` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory.
"""

import os
import sys
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where Code.from_asset("src") makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    # Add repo root first (for imports like infrastructure.*)
    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Local mode: in-memory stores, no user database, no webhook.
for _name in (
    "TICKETS_TABLE",
    "CHAT_LOGS_TABLE",
    "DATABASE_URL",
    "DB_SECRET_ARN",
    "WEBHOOK_TICKET_URL",
    "WEBHOOK_RESOLVE_TICKET_URL",
):
    os.environ.pop(_name, None)
os.environ["ADMIN_USER_IDS"] = "ADMIN-1"

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")

WEBHOOK_URL = "https://automation.example.test/webhook/ticket"
RESOLVE_URL = "https://automation.example.test/webhook/resolve"


@pytest.fixture(autouse=True)
def _fresh_runtime_state():
    """Each test sees fresh settings and fresh in-memory stores."""
    from repositories.factory import reset_stores
    from utils.settings import reset_settings

    reset_settings()
    reset_stores()
    yield
    reset_settings()
    reset_stores()


@pytest.fixture
def tables():
    from repositories.memory_repo import MemoryTables

    return MemoryTables()


@pytest.fixture
def ticket_store(tables):
    from repositories.memory_repo import InMemoryTicketStore

    return InMemoryTicketStore(tables)


@pytest.fixture
def chat_log(tables):
    from repositories.memory_repo import InMemoryChatLogStore
    from services.chat_log_service import ChatLog

    return ChatLog(InMemoryChatLogStore(tables))


@pytest.fixture
def directory():
    from services.user_directory import UserDirectory

    return UserDirectory(engine=None, admin_ids={"ADMIN-1"})


class FakeGateway:
    """Stands in for WebhookGateway; records calls and returns a canned reply."""

    def __init__(self, reply=None):
        from models.agent import NormalizedAgentReply

        self.reply = reply or NormalizedAgentReply(
            agent_message="Here is how to fix it.",
            cards=[{"type": "link", "url": "https://docs.example.test"}],
            tools_used=["kb_search"],
            actions_taken=["looked_up_docs"],
            confidence_score=0.9,
        )
        self.calls = []
        self.resolved = []

    def invoke(self, ticket_id, merchant_id, content):
        self.calls.append((ticket_id, merchant_id, content))
        return self.reply

    def notify_resolved(self, ticket_id, merchant_id, admin_id):
        self.resolved.append((ticket_id, merchant_id, admin_id))
        return True


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def state_machine(ticket_store, chat_log, directory):
    from services.escalation_service import EscalationStateMachine

    return EscalationStateMachine(tickets=ticket_store, chat_log=chat_log, directory=directory)


@pytest.fixture
def conversation(ticket_store, chat_log, fake_gateway, state_machine):
    from services.conversation_service import ConversationService

    return ConversationService(
        tickets=ticket_store,
        chat_log=chat_log,
        gateway=fake_gateway,
        state_machine=state_machine,
    )


@pytest.fixture
def admin_service(ticket_store, chat_log, directory, state_machine, fake_gateway):
    from services.admin_service import AdminMessageService

    return AdminMessageService(
        tickets=ticket_store,
        chat_log=chat_log,
        directory=directory,
        state_machine=state_machine,
        gateway=fake_gateway,
    )


@pytest.fixture
def make_ticket(ticket_store):
    """Create a ticket (with its empty chat log) directly in the store."""
    from models.ticket import Ticket

    def _make(merchant_id="MERCH-1", **fields):
        ticket = Ticket(ticket_number="TKT-TEST-0001", merchant_id=merchant_id, **fields)
        return ticket_store.create(ticket)

    return _make
