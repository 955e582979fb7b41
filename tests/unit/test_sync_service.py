"""PollingSync snapshot and delta reads."""

import pytest

from models.message import Message
from services.sync_service import PollingSync
from services.ticket_service import TicketService
from utils.error_handling import NotFoundError


@pytest.fixture
def sync(ticket_store, chat_log):
    return PollingSync(ticket_service=TicketService(ticket_store), chat_log=chat_log)


def test_snapshot_includes_full_history(sync, chat_log, make_ticket):
    ticket = make_ticket()
    chat_log.append(ticket.id, Message.from_merchant("one"))
    chat_log.append(ticket.id, Message.from_operator("two"))

    snapshot = sync.snapshot(ticket.id, "MERCH-1")

    assert snapshot["_id"] == ticket.id
    assert [m["content"] for m in snapshot["chat_history"]] == ["one", "two"]
    assert [m["seq"] for m in snapshot["chat_history"]] == [0, 1]


def test_snapshot_hidden_from_other_merchants(sync, make_ticket):
    ticket = make_ticket()
    with pytest.raises(NotFoundError):
        sync.snapshot(ticket.id, "MERCH-2")


def test_delta_after_cursor(sync, chat_log, make_ticket):
    ticket = make_ticket()
    for text in ["a", "b", "c"]:
        chat_log.append(ticket.id, Message.from_merchant(text))

    delta = sync.delta(ticket.id, "MERCH-1", after_seq=1)

    assert [m["content"] for m in delta["messages"]] == ["c"]
    assert delta["last_seq"] == 2


def test_delta_without_new_messages_keeps_cursor(sync, chat_log, make_ticket):
    ticket = make_ticket()
    chat_log.append(ticket.id, Message.from_merchant("a"))

    delta = sync.delta(ticket.id, "MERCH-1", after_seq=0)

    assert delta["messages"] == []
    assert delta["last_seq"] == 0


def test_list_snapshots(sync, make_ticket):
    make_ticket()
    make_ticket(merchant_id="MERCH-2")
    assert len(sync.list_snapshots("MERCH-1")) == 1
