"""Unit tests for the email processing queue."""

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from backend.src.models.email import DecodedEmail, EmailStatus
from backend.src.models.note import InputType
from backend.src.services.email_queue import EmailQueueError, EmailQueueService

RECEIVED = datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)


def _email(email_id: str, minutes: int = 0) -> DecodedEmail:
    return DecodedEmail(
        email_id=email_id,
        sender="Bob <bob@example.com>",
        subject=f"Subject {email_id}",
        received_at=RECEIVED + timedelta(minutes=minutes),
        email_body=f"Body of {email_id}",
    )


@pytest.fixture
def queue(db, store, categorizer) -> EmailQueueService:
    return EmailQueueService(db, categorizer, store)


def _analysis() -> str:
    return json.dumps(
        {
            "category": "Travel",
            "tags": ["Subject m1", "flights"],
            "metadata": {"analysis_notes": "Leaves Friday"},
        }
    )


def test_enqueue_is_idempotent(queue) -> None:
    assert queue.enqueue("alice", [_email("m1"), _email("m2")]) == (2, 0)
    assert queue.enqueue("alice", [_email("m1"), _email("m3")]) == (1, 1)

    items = queue.list_items("alice")
    assert sorted(item.email_id for item in items) == ["m1", "m2", "m3"]


def test_same_message_for_two_users(queue) -> None:
    queue.enqueue("alice", [_email("m1")])
    queue.enqueue("bob", [_email("m1")])

    assert len(queue.list_items("alice")) == 1
    assert len(queue.list_items("bob")) == 1


def test_list_newest_first_and_filter(queue) -> None:
    queue.enqueue("alice", [_email("old", 0), _email("new", 10)])

    assert [item.email_id for item in queue.list_items("alice")] == ["new", "old"]
    assert queue.list_items("alice", EmailStatus.COMPLETED) == []


def test_get_item_scoped_by_user(queue) -> None:
    queue.enqueue("alice", [_email("m1")])
    item = queue.list_items("alice")[0]

    with pytest.raises(EmailQueueError) as excinfo:
        queue.get_item("bob", item.id)
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_promote_creates_note(queue, store, llm) -> None:
    queue.enqueue("alice", [_email("m1")])
    item = queue.list_items("alice")[0]
    llm.complete.return_value = _analysis()

    promoted, note = await queue.promote("alice", item.id)

    assert promoted.status == EmailStatus.COMPLETED
    assert promoted.processed_at is not None
    assert note.input_type == InputType.EMAIL
    assert note.content == "Body of m1"
    assert note.metadata["email_subject"] == "Subject m1"
    assert note.metadata["analysis_notes"] == "Leaves Friday"
    assert store.list_notes("alice") == [note]


@pytest.mark.asyncio
async def test_promote_twice_conflicts(queue, llm) -> None:
    queue.enqueue("alice", [_email("m1")])
    item = queue.list_items("alice")[0]
    llm.complete.return_value = _analysis()
    await queue.promote("alice", item.id)

    with pytest.raises(EmailQueueError) as excinfo:
        await queue.promote("alice", item.id)

    assert excinfo.value.error == "already_processed"
    assert excinfo.value.status_code == 409


@pytest.mark.asyncio
async def test_failed_promotion_records_error_and_can_retry(queue, store, llm) -> None:
    queue.enqueue("alice", [_email("m1")])
    item = queue.list_items("alice")[0]
    llm.complete.return_value = "not json"

    with pytest.raises(EmailQueueError) as excinfo:
        await queue.promote("alice", item.id)

    assert excinfo.value.status_code == 502
    failed = queue.get_item("alice", item.id)
    assert failed.status == EmailStatus.ERROR
    assert failed.error_message
    assert store.list_notes("alice") == []

    llm.complete.return_value = _analysis()
    promoted, _ = await queue.promote("alice", item.id)
    assert promoted.status == EmailStatus.COMPLETED
    assert promoted.error_message is None


@pytest.mark.asyncio
async def test_storage_failure_releases_item_for_retry(queue, store, llm) -> None:
    queue.enqueue("alice", [_email("m1")])
    item = queue.list_items("alice")[0]
    llm.complete.return_value = _analysis()

    with patch.object(store, "insert", side_effect=sqlite3.OperationalError("database is locked")):
        with pytest.raises(sqlite3.OperationalError):
            await queue.promote("alice", item.id)

    failed = queue.get_item("alice", item.id)
    assert failed.status == EmailStatus.ERROR
    assert "database is locked" in failed.error_message

    promoted, note = await queue.promote("alice", item.id)
    assert promoted.status == EmailStatus.COMPLETED
    assert store.list_notes("alice") == [note]


@pytest.mark.asyncio
async def test_promote_missing_item(queue) -> None:
    with pytest.raises(EmailQueueError) as excinfo:
        await queue.promote("alice", "missing")
    assert excinfo.value.status_code == 404
