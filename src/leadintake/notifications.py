"""Durable notification queue and its scheduler.

Outbound emails are never sent inline. Orchestrators enqueue a pending
row; the worker drains pending rows in small batches and hands each one
to the email transport. Delivery is at-least-once with a bounded number
of attempts:

- ``attempts`` is incremented in the store before the transport is
  called, so a crash mid-send still consumes an attempt.
- A transport failure leaves the message pending until the attempt
  limit is reached, then marks it failed.
- An unconfigured transport fails the message immediately.
- Failed messages are only re-sent through an explicit ``retry``.

The worker fires a drain every ``poll_interval`` seconds. A drain that is
still running when the next tick fires causes that tick to be skipped.
A slower sweep reports queue health.

Usage:
    >>> queue = NotificationQueue(store, build_transport(config), from_email=config.SENDGRID_FROM_EMAIL)
    >>> message_id = await queue.enqueue("buyer@example.com", "Hello", text="Hi")
    >>> worker = NotificationWorker(queue)
    >>> await worker.run(stop_event)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .errors import NotFoundError, TransportUnconfiguredError, ValidationError
from .models import NotificationMessage, NotificationStatus, utcnow
from .store import Page, RecordStore, check_paging

logger = logging.getLogger(__name__)

# Constants
ATTEMPT_LIMIT = 3
DEFAULT_BATCH_SIZE = 10
DEFAULT_POLL_INTERVAL_SECONDS = 60.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 30 * 60.0

UNCONFIGURED_ERROR = "Email transport not configured (SENDGRID_API_KEY is not set)"
NOT_FOUND_ERROR = "Notification not found"
NOT_PENDING_ERROR = "Notification is {status}, not pending"


class EmailTransport(Protocol):
    """Anything that can send one email or raise."""

    async def send(
        self,
        to_email: str,
        from_email: Optional[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
    ) -> Any:
        ...


@dataclass
class DeliveryResult:
    """Outcome of a single delivery attempt.

    Attributes:
        success: Whether the transport accepted the message.
        error: Error text when it did not.
    """

    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {"success": self.success, "error": self.error}


@dataclass
class DrainResult:
    """Counts for one drain cycle.

    Attributes:
        processed: Messages attempted in this cycle.
        succeeded: Messages sent.
        failed: Messages whose attempt failed (pending or failed afterwards).
    """

    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


@dataclass
class QueueStats:
    """Snapshot of queue health.

    Attributes:
        total: All messages ever queued.
        pending: Messages awaiting delivery.
        sent: Messages delivered.
        failed: Messages given up on.
        exhausted: Failed messages that used the full attempt budget.
        success_rate: Sent as a whole percentage of total.
    """

    total: int = 0
    pending: int = 0
    sent: int = 0
    failed: int = 0
    exhausted: int = 0
    success_rate: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total": self.total,
            "pending": self.pending,
            "sent": self.sent,
            "failed": self.failed,
            "exhausted": self.exhausted,
            "success_rate": self.success_rate,
        }


class NotificationQueue:
    """Store-backed outbound email queue.

    Attributes:
        store: Record store holding ``notification_queue`` rows.
        transport: Email transport, or None when unconfigured.
        from_email: Sender address stamped on every queued message.
        attempt_limit: Attempts after which a message is marked failed.
    """

    def __init__(
        self,
        store: RecordStore,
        transport: Optional[EmailTransport],
        *,
        from_email: str,
        attempt_limit: int = ATTEMPT_LIMIT,
    ) -> None:
        self.store = store
        self.transport = transport
        self.from_email = from_email
        self.attempt_limit = attempt_limit

    async def enqueue(
        self,
        to_email: str,
        subject: str,
        *,
        html: Optional[str] = None,
        text: Optional[str] = None,
        template_name: Optional[str] = None,
        template_data: Optional[dict[str, Any]] = None,
    ) -> str:
        """Queue a message for later delivery.

        Returns:
            The new message ID.

        Raises:
            ValidationError: If there is no recipient or no body.
        """
        if not to_email:
            raise ValidationError("Notification requires a recipient")
        if not html and not text:
            raise ValidationError("Notification requires an HTML or text body")

        message = await self.store.create(
            NotificationMessage,
            to_email=to_email,
            from_email=self.from_email,
            subject=subject,
            body_html=html,
            body_text=text,
            template_name=template_name,
            template_data=template_data or {},
            status=NotificationStatus.PENDING,
            attempts=0,
        )
        logger.info(
            "Queued notification %s (template=%s, to=%s)",
            message.id,
            template_name,
            to_email,
            extra={"notification_id": message.id, "template": template_name},
        )
        return message.id

    async def drain_batch(self, batch_size: int = DEFAULT_BATCH_SIZE) -> DrainResult:
        """Deliver up to ``batch_size`` eligible messages, oldest first.

        Store errors propagate and abort the cycle. Transport failures are
        recorded per message and never abort it.
        """
        messages = await self.store.find_many(
            NotificationMessage,
            {"status": NotificationStatus.PENDING},
            conditions=(NotificationMessage.attempts < self.attempt_limit,),
            order_by=(NotificationMessage.created_at.asc(),),
            limit=batch_size,
        )

        result = DrainResult()
        if not messages:
            return result

        logger.info("Processing %d pending notifications", len(messages))

        for message in messages:
            delivery = await self.deliver_one(message.id)
            result.processed += 1
            if delivery.success:
                result.succeeded += 1
            else:
                result.failed += 1

        logger.info(
            "Queue batch complete: processed=%d, succeeded=%d, failed=%d",
            result.processed,
            result.succeeded,
            result.failed,
        )
        return result

    async def deliver_one(self, message_id: str) -> DeliveryResult:
        """Make one delivery attempt for a pending message.

        The attempt counter is incremented before the transport is called,
        and only while the message is still pending. Sent and failed
        messages are left untouched until ``retry`` resets them.
        """
        message = await self.store.update(
            NotificationMessage,
            message_id,
            conditions=(NotificationMessage.status == NotificationStatus.PENDING,),
            attempts=NotificationMessage.attempts + 1,
            last_attempt_at=utcnow(),
        )
        if message is None:
            current = await self.store.find_unique(NotificationMessage, message_id)
            if current is None:
                return DeliveryResult(success=False, error=NOT_FOUND_ERROR)
            logger.warning(
                "Notification %s skipped: status is %s",
                message_id,
                current.status.value,
                extra={"notification_id": message_id, "status": current.status.value},
            )
            return DeliveryResult(
                success=False,
                error=NOT_PENDING_ERROR.format(status=current.status.value),
            )

        log_extra = {
            "notification_id": message_id,
            "attempt": message.attempts,
            "template": message.template_name,
        }

        if self.transport is None:
            error = str(TransportUnconfiguredError(UNCONFIGURED_ERROR))
            await self.store.update(
                NotificationMessage,
                message_id,
                status=NotificationStatus.FAILED,
                error_message=error,
            )
            logger.error("Notification %s failed: %s", message_id, error, extra=log_extra)
            return DeliveryResult(success=False, error=error)

        try:
            await self.transport.send(
                message.to_email,
                message.from_email,
                message.subject,
                message.body_html,
                message.body_text,
            )
        except Exception as e:
            error = str(e) or e.__class__.__name__
            exhausted = message.attempts >= self.attempt_limit
            await self.store.update(
                NotificationMessage,
                message_id,
                status=NotificationStatus.FAILED if exhausted else NotificationStatus.PENDING,
                error_message=error,
            )
            if exhausted:
                logger.error(
                    "Notification %s failed after %d attempts: %s",
                    message_id,
                    message.attempts,
                    error,
                    extra=log_extra,
                )
            else:
                logger.warning(
                    "Notification %s attempt %d/%d failed: %s",
                    message_id,
                    message.attempts,
                    self.attempt_limit,
                    error,
                    extra=log_extra,
                )
            return DeliveryResult(success=False, error=error)

        await self.store.update(
            NotificationMessage,
            message_id,
            status=NotificationStatus.SENT,
            sent_at=utcnow(),
            error_message=None,
        )
        logger.info(
            "Notification %s sent to %s", message_id, message.to_email, extra=log_extra
        )
        return DeliveryResult(success=True)


    async def retry(self, message_id: str) -> DeliveryResult:
        """Reset a message's attempt budget and deliver it immediately.

        Raises:
            NotFoundError: If the message does not exist.
        """
        message = await self.store.update(
            NotificationMessage,
            message_id,
            status=NotificationStatus.PENDING,
            attempts=0,
            error_message=None,
        )
        if message is None:
            raise NotFoundError("Notification", message_id)

        logger.info("Retrying notification %s", message_id, extra={"notification_id": message_id})
        return await self.deliver_one(message_id)

    async def get_stats(self) -> QueueStats:
        """Count messages by status."""
        total = await self.store.count(NotificationMessage)
        pending = await self.store.count(NotificationMessage, {"status": NotificationStatus.PENDING})
        sent = await self.store.count(NotificationMessage, {"status": NotificationStatus.SENT})
        failed = await self.store.count(NotificationMessage, {"status": NotificationStatus.FAILED})
        exhausted = await self.store.count(
            NotificationMessage,
            {"status": NotificationStatus.FAILED},
            conditions=(NotificationMessage.attempts >= self.attempt_limit,),
        )
        return QueueStats(
            total=total,
            pending=pending,
            sent=sent,
            failed=failed,
            exhausted=exhausted,
            success_rate=round(sent / total * 100) if total > 0 else 0,
        )

    async def list_messages(
        self,
        status: Optional[NotificationStatus] = None,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        """List messages newest first, optionally filtered by status.

        Raises:
            ValidationError: If page or limit is out of range.
        """
        check_paging(page, limit)
        filters = {"status": NotificationStatus(status)} if status else None
        data = await self.store.find_many(
            NotificationMessage,
            filters,
            order_by=(NotificationMessage.created_at.desc(),),
            limit=limit,
            offset=(page - 1) * limit,
        )
        total = await self.store.count(NotificationMessage, filters)
        return Page(data=data, total=total, page=page, limit=limit)

    async def get_message(self, message_id: str) -> NotificationMessage:
        """Fetch one message.

        Raises:
            NotFoundError: If the message does not exist.
        """
        message = await self.store.find_unique(NotificationMessage, message_id)
        if message is None:
            raise NotFoundError("Notification", message_id)
        return message


class NotificationWorker:
    """Interval scheduler for the notification queue.

    Attributes:
        queue: Queue to drain.
        poll_interval: Seconds between drain triggers.
        sweep_interval: Seconds between health sweeps.
        batch_size: Messages per drain.
        is_processing: True while a drain is running in this process.
    """

    def __init__(
        self,
        queue: NotificationQueue,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.queue = queue
        self.poll_interval = poll_interval
        self.sweep_interval = sweep_interval
        self.batch_size = batch_size
        self.is_processing = False
        self._tasks: set[asyncio.Task] = set()

    async def process_queue(self) -> Optional[DrainResult]:
        """Run one drain unless another is in progress.

        Returns:
            The drain counts, or None when skipped or when the drain failed.
        """
        if self.is_processing:
            logger.debug("Queue processing already in progress, skipping")
            return None

        self.is_processing = True
        try:
            return await self.queue.drain_batch(self.batch_size)
        except Exception:
            logger.exception("Error processing notification queue")
            return None
        finally:
            self.is_processing = False

    async def sweep(self) -> Optional[QueueStats]:
        """Log queue health. Performs no delivery."""
        try:
            stats = await self.queue.get_stats()
        except Exception:
            logger.exception("Error reading notification queue stats")
            return None

        logger.info(
            "Queue stats: total=%d, pending=%d, sent=%d, failed=%d, success_rate=%d%%",
            stats.total,
            stats.pending,
            stats.sent,
            stats.failed,
            stats.success_rate,
            extra={"queue_stats": stats.to_dict()},
        )
        if stats.exhausted:
            logger.warning(
                "%d notifications exhausted their %d delivery attempts",
                stats.exhausted,
                self.queue.attempt_limit,
            )
        return stats

    def _fire(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Fire drains and sweeps on their intervals until ``stop_event`` is set.

        Each tick starts the drain as its own task, so a slow drain does not
        delay the clock; the next tick is skipped by the in-progress guard.
        """
        stop_event = stop_event or asyncio.Event()
        loop = asyncio.get_running_loop()
        next_sweep = loop.time() + self.sweep_interval

        logger.info(
            "Notification worker started (poll=%ss, sweep=%ss, batch=%d)",
            self.poll_interval,
            self.sweep_interval,
            self.batch_size,
        )

        try:
            while not stop_event.is_set():
                self._fire(self.process_queue())
                if loop.time() >= next_sweep:
                    self._fire(self.sweep())
                    next_sweep += self.sweep_interval
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            logger.info("Notification worker stopped")
