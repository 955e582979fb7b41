"""ChatLog append / read semantics, including concurrent appends."""

from datetime import datetime, timedelta, timezone
import threading

import pytest

from models.message import Message, MessageRole
from utils.error_handling import NotFoundError

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _message(content, offset_seconds=0, role=MessageRole.USER):
    return Message(role=role, content=content, timestamp=BASE + timedelta(seconds=offset_seconds))


def test_read_returns_append_order_with_seq(chat_log, make_ticket):
    ticket = make_ticket()
    for index, text in enumerate(["one", "two", "three"]):
        chat_log.append(ticket.id, _message(text, index))

    entries = chat_log.read(ticket.id)

    assert [m.content for m in entries] == ["one", "two", "three"]
    assert [m.seq for m in entries] == [0, 1, 2]


def test_since_is_strictly_exclusive(chat_log, make_ticket):
    ticket = make_ticket()
    for index, text in enumerate(["a", "b", "c"]):
        chat_log.append(ticket.id, _message(text, index))

    entries = chat_log.read(ticket.id, since=BASE + timedelta(seconds=1))

    assert [m.content for m in entries] == ["c"]


def test_after_seq_filter(chat_log, make_ticket):
    ticket = make_ticket()
    for index, text in enumerate(["a", "b", "c"]):
        chat_log.append(ticket.id, _message(text, index))

    assert [m.content for m in chat_log.read(ticket.id, after_seq=0)] == ["b", "c"]
    assert chat_log.read(ticket.id, after_seq=2) == []
    assert len(chat_log.read(ticket.id, after_seq=-1)) == 3


def test_same_timestamp_entries_are_kept_by_seq(chat_log, make_ticket):
    ticket = make_ticket()
    chat_log.append(ticket.id, _message("first", 0))
    chat_log.append(ticket.id, _message("second", 0))

    assert [m.content for m in chat_log.read(ticket.id, after_seq=0)] == ["second"]
    assert chat_log.read(ticket.id, since=BASE) == []


def test_append_to_unknown_log_raises(chat_log):
    with pytest.raises(NotFoundError):
        chat_log.append("missing", _message("x"))


def test_read_unknown_log_raises(chat_log):
    with pytest.raises(NotFoundError):
        chat_log.read("missing")


def test_entries_are_not_mutated_by_read(chat_log, make_ticket):
    ticket = make_ticket()
    chat_log.append(ticket.id, _message("x"))
    chat_log.read(ticket.id)[0].content = "changed"
    assert chat_log.read(ticket.id)[0].content == "x"


def test_concurrent_appends_lose_nothing(chat_log, make_ticket):
    ticket = make_ticket()
    writers, per_writer = 8, 25
    barrier = threading.Barrier(writers)

    def write(writer):
        barrier.wait()
        for index in range(per_writer):
            role = MessageRole.USER if writer % 2 else MessageRole.ASSISTANT
            chat_log.append(ticket.id, Message(role=role, content=f"{writer}-{index}"))

    threads = [threading.Thread(target=write, args=(w,)) for w in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entries = chat_log.read(ticket.id)
    contents = [m.content for m in entries]
    assert len(entries) == writers * per_writer
    assert len(set(contents)) == len(contents)
    assert [m.seq for m in entries] == list(range(writers * per_writer))
    for writer in range(writers):
        own = [c for c in contents if c.startswith(f"{writer}-")]
        assert own == [f"{writer}-{i}" for i in range(per_writer)]
