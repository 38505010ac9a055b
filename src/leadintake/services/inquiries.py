"""Inquiry intake orchestration.

Submission flow:
1. Validate the payload
2. Score it once (the score is never recomputed)
3. Persist the inquiry
4. Queue a confirmation email to the submitter
5. Queue an internal alert when the score reaches the alert threshold

Emails are only queued here; delivery happens in the notification worker.
"""

import logging
from typing import Any, Optional

from ..errors import NotFoundError, ValidationError
from ..models import Inquiry, InquiryStatus
from ..notifications import NotificationQueue
from ..schemas import InquiryCreate, InquiryUpdate, parse_model
from ..store import Page, RecordStore, check_paging
from ..utils import email_templates
from ..utils.email_templates import Branding
from ..utils.lead_scoring import HIGH_PRIORITY_THRESHOLD, calculate_score, should_alert

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("created_at", "updated_at", "lead_score", "full_name", "country", "status")


class InquiryService:
    """Create, read and update inquiries.

    Attributes:
        store: Record store.
        queue: Notification queue used for confirmation and alert emails.
        admin_email: Recipient of internal lead alerts.
        branding: Branding applied to rendered emails.
    """

    def __init__(
        self,
        store: RecordStore,
        queue: NotificationQueue,
        *,
        admin_email: str,
        branding: Optional[Branding] = None,
    ) -> None:
        self.store = store
        self.queue = queue
        self.admin_email = admin_email
        self.branding = branding or Branding()

    async def submit_inquiry(
        self,
        payload: Any,
        *,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Inquiry:
        """Validate, score, persist and queue notifications for an inquiry.

        Args:
            payload: ``InquiryCreate`` or a mapping with the same keys.
            ip_address: Submitter IP, if known.
            user_agent: Submitter user agent, if known.

        Raises:
            ValidationError: If the payload is malformed. Nothing is persisted.
        """
        data = parse_model(InquiryCreate, payload)
        lead_score = calculate_score(data)

        inquiry = await self.store.create(
            Inquiry,
            inquiry_type=data.inquiry_type,
            full_name=data.full_name,
            email=data.email,
            phone=data.phone,
            company=data.company,
            country=data.country,
            message=data.message,
            inquiry_metadata=data.metadata,
            lead_score=lead_score,
            status=InquiryStatus.NEW,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(
            "Inquiry %s created (type=%s, country=%s, lead_score=%d)",
            inquiry.id,
            data.inquiry_type.value,
            data.country,
            lead_score,
        )

        confirmation = email_templates.inquiry_confirmation(
            self.branding, data.full_name, inquiry.id, data.inquiry_type.value
        )
        await self.queue.enqueue(
            data.email,
            confirmation.subject,
            html=confirmation.html,
            text=confirmation.text,
            template_name=confirmation.template_name,
            template_data={
                "inquiry_id": inquiry.id,
                "full_name": data.full_name,
                "inquiry_type": data.inquiry_type.value,
            },
        )

        if should_alert(lead_score):
            alert = email_templates.admin_notification(
                self.branding,
                inquiry_id=inquiry.id,
                full_name=data.full_name,
                email=data.email,
                country=data.country,
                inquiry_type=data.inquiry_type.value,
                lead_score=lead_score,
                message=data.message,
                company=data.company,
            )
            await self.queue.enqueue(
                self.admin_email,
                alert.subject,
                html=alert.html,
                text=alert.text,
                template_name=alert.template_name,
                template_data={"inquiry_id": inquiry.id, "lead_score": lead_score},
            )
            logger.info("Lead alert queued for inquiry %s", inquiry.id)

        return inquiry

    async def get_inquiry(self, inquiry_id: str) -> Inquiry:
        """Fetch one inquiry.

        Raises:
            NotFoundError: If the inquiry does not exist.
        """
        inquiry = await self.store.find_unique(Inquiry, inquiry_id)
        if inquiry is None:
            raise NotFoundError("Inquiry", inquiry_id)
        return inquiry

    async def list_inquiries(
        self,
        status: Optional[InquiryStatus] = None,
        *,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Page:
        """List inquiries with pagination.

        Raises:
            ValidationError: On an unknown sort field or order, or on a page
                or limit out of range.
        """
        check_paging(page, limit)
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort inquiries by {sort_by!r}")
        if order not in ("asc", "desc"):
            raise ValidationError("order must be 'asc' or 'desc'")

        column = getattr(Inquiry, sort_by)
        filters = {"status": InquiryStatus(status)} if status else None
        data = await self.store.find_many(
            Inquiry,
            filters,
            order_by=(column.asc() if order == "asc" else column.desc(),),
            limit=limit,
            offset=(page - 1) * limit,
        )
        total = await self.store.count(Inquiry, filters)
        return Page(data=data, total=total, page=page, limit=limit)

    async def update_inquiry(self, inquiry_id: str, payload: Any) -> Inquiry:
        """Update status, assignee or metadata. The lead score is never touched.

        Raises:
            ValidationError: If the payload is malformed.
            NotFoundError: If the inquiry does not exist.
        """
        data = parse_model(InquiryUpdate, payload)
        await self.get_inquiry(inquiry_id)

        values: dict[str, Any] = {}
        fields = data.model_fields_set
        if "status" in fields and data.status is not None:
            values["status"] = data.status
        if "assigned_to_id" in fields:
            values["assigned_to_id"] = data.assigned_to_id
        if "metadata" in fields and data.metadata is not None:
            values["inquiry_metadata"] = data.metadata

        if not values:
            return await self.get_inquiry(inquiry_id)

        inquiry = await self.store.update(Inquiry, inquiry_id, **values)
        if inquiry is None:
            raise NotFoundError("Inquiry", inquiry_id)
        logger.info("Inquiry %s updated (%s)", inquiry_id, ", ".join(sorted(values)))
        return inquiry

    async def close_inquiry(self, inquiry_id: str) -> Inquiry:
        """Soft delete: mark the inquiry closed.

        Raises:
            NotFoundError: If the inquiry does not exist.
        """
        inquiry = await self.store.update(Inquiry, inquiry_id, status=InquiryStatus.CLOSED)
        if inquiry is None:
            raise NotFoundError("Inquiry", inquiry_id)
        logger.info("Inquiry %s closed", inquiry_id)
        return inquiry

    async def get_stats(self) -> dict[str, int]:
        """Counts for the admin overview."""
        return {
            "total": await self.store.count(Inquiry),
            "new": await self.store.count(Inquiry, {"status": InquiryStatus.NEW}),
            "in_progress": await self.store.count(Inquiry, {"status": InquiryStatus.IN_PROGRESS}),
            "high_priority": await self.store.count(
                Inquiry, conditions=(Inquiry.lead_score >= HIGH_PRIORITY_THRESHOLD,)
            ),
        }
