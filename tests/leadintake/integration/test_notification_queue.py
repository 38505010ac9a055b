"""Integration tests for the durable notification queue and its worker."""

import asyncio
import logging
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure repo root is on sys.path so imports work correctly
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../.."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from leadintake.errors import NotFoundError, ValidationError
from leadintake.models import NotificationMessage, NotificationStatus
from leadintake.notifications import (
    ATTEMPT_LIMIT,
    DrainResult,
    NotificationWorker,
    QueueStats,
)

pytestmark = pytest.mark.integration


async def enqueue_many(queue, count: int) -> list[str]:
    """Queue ``count`` distinct text messages."""
    ids = []
    for i in range(count):
        ids.append(await queue.enqueue(f"buyer{i}@example.com", f"Message {i}", text=f"Body {i}"))
    return ids


class TestEnqueue:
    """Tests for NotificationQueue.enqueue."""

    @pytest.mark.asyncio
    async def test_enqueue_creates_pending_message(self, queue, store, transport):
        """Queued messages start pending with no attempts and are not sent inline."""
        message_id = await queue.enqueue(
            "buyer@example.com",
            "Hello",
            html="<p>Hi</p>",
            text="Hi",
            template_name="inquiry_confirmation",
            template_data={"inquiry_id": "inq-1"},
        )

        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.PENDING
        assert message.attempts == 0
        assert message.from_email == "noreply@terra.example"
        assert message.template_data == {"inquiry_id": "inq-1"}
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_enqueue_requires_recipient_and_body(self, queue, store):
        """Messages without a recipient or a body are rejected."""
        with pytest.raises(ValidationError):
            await queue.enqueue("", "Hello", text="Hi")
        with pytest.raises(ValidationError):
            await queue.enqueue("buyer@example.com", "Hello")

        assert await store.count(NotificationMessage) == 0


class TestDeliver:
    """Tests for deliver_one and drain_batch."""

    @pytest.mark.asyncio
    async def test_drain_sends_with_working_transport(self, queue, store, transport):
        """A drained message ends sent after one attempt."""
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")

        result = await queue.drain_batch(1)

        assert result == DrainResult(processed=1, succeeded=1, failed=0)
        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.SENT
        assert message.attempts == 1
        assert message.sent_at is not None
        assert message.last_attempt_at is not None
        assert message.error_message is None
        assert transport.sent[0]["to"] == "buyer@example.com"
        assert transport.sent[0]["from"] == "noreply@terra.example"

    @pytest.mark.asyncio
    async def test_drain_with_nothing_eligible(self, queue):
        """An empty queue drains to zero counts."""
        assert await queue.drain_batch() == DrainResult(0, 0, 0)

    @pytest.mark.asyncio
    async def test_drain_respects_batch_size_oldest_first(self, queue, transport):
        """Only batch_size messages are processed, oldest first."""
        await enqueue_many(queue, 3)

        result = await queue.drain_batch(2)

        assert result.processed == 2
        assert [sent["subject"] for sent in transport.sent] == ["Message 0", "Message 1"]

        result = await queue.drain_batch(2)
        assert result.processed == 1
        assert transport.sent[-1]["subject"] == "Message 2"

    @pytest.mark.asyncio
    async def test_failing_transport_fails_after_attempt_limit(
        self, make_queue, store, failing_transport
    ):
        """Three failed attempts mark the message failed; a fourth is never automatic."""
        queue = make_queue(failing_transport)
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")

        for attempt in range(1, ATTEMPT_LIMIT):
            result = await queue.deliver_one(message_id)
            assert result.success is False
            message = await store.find_unique(NotificationMessage, message_id)
            assert message.status == NotificationStatus.PENDING
            assert message.attempts == attempt
            assert "503" in message.error_message

        await queue.deliver_one(message_id)
        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.FAILED
        assert message.attempts == ATTEMPT_LIMIT
        assert failing_transport.calls == ATTEMPT_LIMIT

        assert await queue.drain_batch() == DrainResult(0, 0, 0)
        assert failing_transport.calls == ATTEMPT_LIMIT

    @pytest.mark.asyncio
    async def test_repeated_drains_exhaust_retries(self, make_queue, store, failing_transport):
        """Scheduled drains retry a failing message until it is failed."""
        queue = make_queue(failing_transport)
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")

        for _ in range(ATTEMPT_LIMIT + 2):
            await queue.drain_batch()

        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.FAILED
        assert failing_transport.calls == ATTEMPT_LIMIT

    @pytest.mark.asyncio
    async def test_unconfigured_transport_fails_immediately(self, make_queue, store):
        """Without a transport the first attempt fails the message for good."""
        queue = make_queue(None)
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")

        result = await queue.deliver_one(message_id)

        assert result.success is False
        assert "SENDGRID_API_KEY" in result.error
        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.FAILED
        assert message.attempts == 1

    @pytest.mark.asyncio
    async def test_deliver_unknown_message(self, queue):
        """Unknown IDs report not found instead of raising."""
        result = await queue.deliver_one("00000000-0000-0000-0000-000000000000")
        assert result.success is False
        assert result.error == "Notification not found"

    @pytest.mark.asyncio
    async def test_deliver_sent_message_is_a_no_op(self, queue, store, transport):
        """A sent message is never re-sent and keeps its attempt count."""
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")
        await queue.deliver_one(message_id)

        result = await queue.deliver_one(message_id)

        assert result.success is False
        assert result.error == "Notification is sent, not pending"
        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.SENT
        assert message.attempts == 1
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_deliver_failed_message_stays_failed(self, make_queue, store, failing_transport):
        """An exhausted message stays dead until retried."""
        queue = make_queue(failing_transport)
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")
        for _ in range(ATTEMPT_LIMIT):
            await queue.deliver_one(message_id)

        result = await queue.deliver_one(message_id)

        assert result.success is False
        assert "failed" in result.error
        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.FAILED
        assert message.attempts == ATTEMPT_LIMIT
        assert failing_transport.calls == ATTEMPT_LIMIT

    @pytest.mark.asyncio
    async def test_delivery_logs_carry_message_fields(self, queue, caplog):
        """Delivery log records expose the message ID and attempt number."""
        message_id = await queue.enqueue(
            "buyer@example.com", "Hello", text="Hi", template_name="quote_sent"
        )

        with caplog.at_level(logging.INFO, logger="leadintake.notifications"):
            await queue.deliver_one(message_id)

        sent = [
            record for record in caplog.records
            if record.getMessage().startswith(f"Notification {message_id} sent")
        ]
        assert len(sent) == 1
        assert sent[0].notification_id == message_id
        assert sent[0].attempt == 1
        assert sent[0].template == "quote_sent"


class TestRetry:
    """Tests for manual retry."""

    @pytest.mark.asyncio
    async def test_retry_resets_attempts_and_can_succeed(
        self, make_queue, store, failing_transport, transport
    ):
        """A failed message is reset and delivered when the transport recovers."""
        queue = make_queue(failing_transport)
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")
        for _ in range(ATTEMPT_LIMIT):
            await queue.deliver_one(message_id)

        queue.transport = transport
        result = await queue.retry(message_id)

        assert result.success is True
        message = await store.find_unique(NotificationMessage, message_id)
        assert message.status == NotificationStatus.SENT
        assert message.attempts == 1
        assert message.error_message is None

    @pytest.mark.asyncio
    async def test_retry_unknown_message(self, queue):
        """Retrying an unknown ID raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await queue.retry("00000000-0000-0000-0000-000000000000")


class TestQueries:
    """Tests for stats and listing."""

    @pytest.mark.asyncio
    async def test_stats(self, make_queue, store, transport, failing_transport):
        """Stats count by status and report exhausted messages."""
        queue = make_queue(transport)
        await enqueue_many(queue, 2)
        await queue.drain_batch()

        failing = make_queue(failing_transport)
        failed_id = await failing.enqueue("bad@example.com", "Fails", text="x")
        for _ in range(ATTEMPT_LIMIT):
            await failing.deliver_one(failed_id)
        await queue.enqueue("later@example.com", "Later", text="x")

        stats = await queue.get_stats()

        assert stats == QueueStats(
            total=4, pending=1, sent=2, failed=1, exhausted=1, success_rate=50
        )

    @pytest.mark.asyncio
    async def test_stats_on_empty_queue(self, queue):
        """An empty queue reports a zero success rate."""
        assert (await queue.get_stats()).success_rate == 0

    @pytest.mark.asyncio
    async def test_list_messages(self, queue):
        """Listing filters by status and paginates newest first."""
        ids = await enqueue_many(queue, 3)
        await queue.deliver_one(ids[0])

        pending = await queue.list_messages(NotificationStatus.PENDING)
        assert pending.total == 2
        assert {m.id for m in pending.data} == set(ids[1:])

        page = await queue.list_messages(page=1, limit=2)
        assert page.total == 3
        assert page.total_pages == 2
        assert [m.id for m in page.data] == [ids[2], ids[1]]
        assert page.to_dict()["meta"]["total_pages"] == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page, limit", [(0, 2), (1, -1), (1, 0), (1, 101)])
    async def test_list_messages_rejects_bad_paging(self, queue, page, limit):
        """Page must be positive and limit between 1 and 100."""
        with pytest.raises(ValidationError) as exc_info:
            await queue.list_messages(page=page, limit=limit)
        assert exc_info.value.errors

    @pytest.mark.asyncio
    async def test_get_message(self, queue):
        """Messages are fetched by ID; unknown IDs raise."""
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")
        assert (await queue.get_message(message_id)).subject == "Hello"
        with pytest.raises(NotFoundError):
            await queue.get_message("missing")


class TestNotificationWorker:
    """Tests for the interval scheduler."""

    @pytest.mark.asyncio
    async def test_overlapping_triggers_run_one_drain(self, make_queue, blocking_transport):
        """A trigger that fires while a drain is active is skipped."""
        queue = make_queue(blocking_transport)
        await queue.enqueue("buyer@example.com", "Hello", text="Hi")
        worker = NotificationWorker(queue, batch_size=10)

        first = asyncio.create_task(worker.process_queue())
        await asyncio.wait_for(blocking_transport.started.wait(), timeout=5)

        assert worker.is_processing is True
        assert await worker.process_queue() is None

        blocking_transport.release.set()
        result = await first

        assert result == DrainResult(processed=1, succeeded=1, failed=0)
        assert worker.is_processing is False
        assert len(blocking_transport.sent) == 1

    @pytest.mark.asyncio
    async def test_drain_errors_are_logged_and_flag_cleared(self, caplog):
        """A store error aborts the drain but not the scheduler."""
        queue = MagicMock()
        queue.drain_batch = AsyncMock(side_effect=RuntimeError("database is locked"))
        worker = NotificationWorker(queue)

        with caplog.at_level(logging.ERROR, logger="leadintake.notifications"):
            assert await worker.process_queue() is None

        assert worker.is_processing is False
        assert "Error processing notification queue" in caplog.text

    @pytest.mark.asyncio
    async def test_sweep_reports_exhausted_messages(self, make_queue, failing_transport, caplog):
        """The sweep performs no delivery and warns about exhausted messages."""
        queue = make_queue(failing_transport)
        message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")
        for _ in range(ATTEMPT_LIMIT):
            await queue.deliver_one(message_id)
        worker = NotificationWorker(queue)

        with caplog.at_level(logging.WARNING, logger="leadintake.notifications"):
            stats = await worker.sweep()

        assert stats.exhausted == 1
        assert failing_transport.calls == ATTEMPT_LIMIT
        assert "exhausted" in caplog.text

    @pytest.mark.asyncio
    async def test_run_delivers_until_stopped(self, queue, transport):
        """The run loop drains on its interval and exits when stopped."""
        await enqueue_many(queue, 2)
        worker = NotificationWorker(queue, poll_interval=0.05, sweep_interval=0.1)
        stop_event = asyncio.Event()

        task = asyncio.create_task(worker.run(stop_event))
        for _ in range(100):
            if len(transport.sent) == 2:
                break
            await asyncio.sleep(0.05)
        stop_event.set()
        await asyncio.wait_for(task, timeout=5)

        assert len(transport.sent) == 2
        assert worker.is_processing is False
