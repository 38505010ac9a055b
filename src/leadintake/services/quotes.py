"""Quote request (RFQ) orchestration.

Every status change goes through the workflow guard before anything is
written. Customer emails are queued only when the quote request is linked
to an inquiry, since the inquiry carries the contact details.
"""

import csv
import io
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..models import Inquiry, ProductCategory, QuoteRequest, QuoteStatus, utcnow
from ..notifications import NotificationQueue
from ..schemas import QuoteCreate, QuoteUpdate, SendQuote, parse_model
from ..store import Page, RecordStore, check_paging
from ..utils import email_templates
from ..utils.email_templates import Branding
from ..utils.quote_workflow import (
    allowed_transitions,
    ensure_can_send_quote,
    ensure_valid_transition,
)

logger = logging.getLogger(__name__)

MAX_EXPORT_ROWS = 1000
SORTABLE_FIELDS = ("created_at", "updated_at", "quote_amount", "status", "product_category")
CSV_HEADERS = (
    "ID",
    "Product",
    "Quantity",
    "Budget Range",
    "Timeline",
    "Status",
    "Quote Amount",
    "Quote Sent",
    "Customer Name",
    "Customer Email",
    "Company",
    "Created At",
)


@dataclass
class SendQuoteResult:
    """Result of sending a quote.

    Attributes:
        quote: The updated quote request.
        notified: Whether a quote email was queued for the customer.
    """

    quote: QuoteRequest
    notified: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "quote": self.quote.to_dict(),
            "notified": self.notified,
            "message": "Quote sent successfully",
        }


@dataclass
class CsvExport:
    """CSV export payload.

    Attributes:
        filename: Suggested download filename.
        content: CSV text including the header row.
        count: Number of data rows.
    """

    filename: str
    content: str
    count: int


class QuoteService:
    """Create, update and send quotes.

    Attributes:
        store: Record store.
        queue: Notification queue for customer emails.
        branding: Branding applied to rendered emails.
    """

    def __init__(
        self,
        store: RecordStore,
        queue: NotificationQueue,
        *,
        branding: Optional[Branding] = None,
    ) -> None:
        self.store = store
        self.queue = queue
        self.branding = branding or Branding()

    async def _linked_inquiry(self, quote: QuoteRequest) -> Optional[Inquiry]:
        if not quote.inquiry_id:
            return None
        return await self.store.find_unique(Inquiry, quote.inquiry_id)

    async def create_quote(self, payload: Any) -> QuoteRequest:
        """Create a pending quote request.

        Raises:
            ValidationError: If the payload is malformed.
            NotFoundError: If ``inquiry_id`` names a missing inquiry.
        """
        data = parse_model(QuoteCreate, payload)

        inquiry = None
        if data.inquiry_id:
            inquiry = await self.store.find_unique(Inquiry, data.inquiry_id)
            if inquiry is None:
                raise NotFoundError("Inquiry", data.inquiry_id)

        quote = await self.store.create(
            QuoteRequest,
            inquiry_id=data.inquiry_id,
            product_category=data.product_category,
            quantity=data.quantity,
            budget_range=data.budget_range.value if data.budget_range else None,
            timeline=data.timeline.value if data.timeline else None,
            requirements=data.requirements,
            specifications=data.specifications,
            status=QuoteStatus.PENDING,
        )
        logger.info(
            "Quote request %s created (product=%s, inquiry=%s)",
            quote.id,
            data.product_category.value,
            data.inquiry_id,
        )

        if inquiry is not None:
            email = email_templates.rfq_received(
                self.branding,
                inquiry.full_name,
                quote.product_category.value,
                quote.id,
                quantity=quote.quantity,
            )
            await self.queue.enqueue(
                inquiry.email,
                email.subject,
                html=email.html,
                text=email.text,
                template_name=email.template_name,
                template_data={"rfq_id": quote.id},
            )

        return quote

    async def get_quote(self, quote_id: str) -> QuoteRequest:
        """Fetch one quote request.

        Raises:
            NotFoundError: If the quote request does not exist.
        """
        quote = await self.store.find_unique(QuoteRequest, quote_id)
        if quote is None:
            raise NotFoundError("Quote request", quote_id)
        return quote

    def _filters(
        self,
        status: Optional[QuoteStatus],
        product_category: Optional[ProductCategory],
    ) -> Optional[dict[str, Any]]:
        filters: dict[str, Any] = {}
        if status:
            filters["status"] = QuoteStatus(status)
        if product_category:
            filters["product_category"] = ProductCategory(product_category)
        return filters or None

    async def list_quotes(
        self,
        status: Optional[QuoteStatus] = None,
        product_category: Optional[ProductCategory] = None,
        *,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Page:
        """List quote requests with pagination.

        Raises:
            ValidationError: On an unknown sort field or order, or on a page
                or limit out of range.
        """
        check_paging(page, limit)
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort quote requests by {sort_by!r}")
        if order not in ("asc", "desc"):
            raise ValidationError("order must be 'asc' or 'desc'")

        column = getattr(QuoteRequest, sort_by)
        filters = self._filters(status, product_category)
        data = await self.store.find_many(
            QuoteRequest,
            filters,
            order_by=(column.asc() if order == "asc" else column.desc(),),
            limit=limit,
            offset=(page - 1) * limit,
        )
        total = await self.store.count(QuoteRequest, filters)
        return Page(data=data, total=total, page=page, limit=limit)

    async def update_quote(self, quote_id: str, payload: Any) -> QuoteRequest:
        """Update a quote request, checking any status change first.

        Raises:
            ValidationError: If the payload is malformed.
            NotFoundError: If the quote request does not exist.
            InvalidTransitionError: If the status change is not allowed, or
                the status changed since the request was read.
        """
        data = parse_model(QuoteUpdate, payload)
        existing = await self.get_quote(quote_id)

        if data.status is not None and data.status != existing.status:
            ensure_valid_transition(existing.status, data.status)

        values: dict[str, Any] = {}
        if data.status is not None:
            values["status"] = data.status
        if data.quote_amount is not None:
            values["quote_amount"] = data.quote_amount
        if data.decision_date is not None:
            values["decision_date"] = data.decision_date
        if data.notes is not None:
            values["notes"] = data.notes
        if data.specifications is not None:
            values["specifications"] = data.specifications

        if not values:
            return existing

        quote = await self.store.update(
            QuoteRequest,
            quote_id,
            conditions=(QuoteRequest.status == existing.status,),
            **values,
        )
        if quote is None:
            current = await self.get_quote(quote_id)
            raise InvalidTransitionError(
                current.status.value,
                (data.status or existing.status).value,
                [status.value for status in allowed_transitions(current.status)],
            )
        if data.status is not None and data.status != existing.status:
            logger.info(
                "Quote request %s moved %s -> %s",
                quote_id,
                existing.status.value,
                data.status.value,
            )
        return quote

    async def send_quote(self, quote_id: str, payload: Any) -> SendQuoteResult:
        """Record a quote and queue it to the customer.

        Only pending quote requests can be quoted.

        Raises:
            ValidationError: If the payload is malformed.
            NotFoundError: If the quote request does not exist.
            InvalidTransitionError: If the quote request is not pending,
                including when another writer quotes or closes it first.
        """
        data = parse_model(SendQuote, payload)
        existing = await self.get_quote(quote_id)
        ensure_can_send_quote(existing.status)

        values: dict[str, Any] = {
            "status": QuoteStatus.QUOTED,
            "quote_amount": data.quote_amount,
            "quote_sent_at": utcnow(),
        }
        if data.notes is not None:
            values["notes"] = data.notes
        if data.specifications is not None:
            values["specifications"] = data.specifications

        quote = await self.store.update(
            QuoteRequest,
            quote_id,
            conditions=(QuoteRequest.status == QuoteStatus.PENDING,),
            **values,
        )
        if quote is None:
            # Another writer moved the request out of pending since it was read
            current = await self.get_quote(quote_id)
            ensure_can_send_quote(current.status)
            raise InvalidTransitionError(
                current.status.value,
                QuoteStatus.QUOTED.value,
                [status.value for status in allowed_transitions(current.status)],
            )
        logger.info("Quote %s sent (amount=%s)", quote_id, data.quote_amount)

        inquiry = await self._linked_inquiry(quote)
        if inquiry is None:
            return SendQuoteResult(quote=quote, notified=False)

        email = email_templates.quote_sent(
            self.branding,
            full_name=inquiry.full_name,
            product_category=quote.product_category.value,
            quote_amount=data.quote_amount,
            rfq_id=quote.id,
            quantity=quote.quantity,
            notes=data.notes,
            specifications=data.specifications,
        )
        await self.queue.enqueue(
            inquiry.email,
            email.subject,
            html=email.html,
            text=email.text,
            template_name=email.template_name,
            template_data={"rfq_id": quote.id, "quote_amount": str(data.quote_amount)},
        )
        return SendQuoteResult(quote=quote, notified=True)

    async def get_stats(self) -> dict[str, Any]:
        """Status counts, conversion rate and won value."""
        by_status = {
            status.value: await self.store.count(QuoteRequest, {"status": status})
            for status in QuoteStatus
        }
        won = by_status[QuoteStatus.WON.value]
        closed = won + by_status[QuoteStatus.LOST.value]

        conversion_rate = Decimal(won * 100) / closed if closed > 0 else Decimal(0)
        total_value = await self.store.sum(
            QuoteRequest,
            QuoteRequest.quote_amount,
            {"status": QuoteStatus.WON},
        )
        average = (total_value / won).quantize(Decimal(1), ROUND_HALF_UP) if won > 0 else Decimal(0)

        return {
            "total": await self.store.count(QuoteRequest),
            "by_status": by_status,
            "conversion_rate": float(conversion_rate.quantize(Decimal("0.01"), ROUND_HALF_UP)),
            "total_value": float(total_value),
            "average_quote_value": float(average),
        }

    async def export_csv(
        self,
        status: Optional[QuoteStatus] = None,
        product_category: Optional[ProductCategory] = None,
    ) -> CsvExport:
        """Export up to 1000 quote requests with their contact columns."""
        quotes: list[QuoteRequest] = await self.store.find_many(
            QuoteRequest,
            self._filters(status, product_category),
            order_by=(QuoteRequest.created_at.desc(),),
            limit=MAX_EXPORT_ROWS,
        )

        inquiry_ids = {quote.inquiry_id for quote in quotes if quote.inquiry_id}
        inquiries: dict[str, Inquiry] = {}
        if inquiry_ids:
            linked = await self.store.find_many(Inquiry, conditions=(Inquiry.id.in_(inquiry_ids),))
            inquiries = {inquiry.id: inquiry for inquiry in linked}

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for quote in quotes:
            inquiry = inquiries.get(quote.inquiry_id) if quote.inquiry_id else None
            writer.writerow([
                quote.id,
                quote.product_category.value,
                quote.quantity or "",
                quote.budget_range or "",
                quote.timeline or "",
                quote.status.value,
                f"${quote.quote_amount}" if quote.quote_amount else "",
                quote.quote_sent_at.isoformat() if quote.quote_sent_at else "",
                inquiry.full_name if inquiry else "",
                inquiry.email if inquiry else "",
                (inquiry.company or "") if inquiry else "",
                quote.created_at.isoformat(),
            ])

        return CsvExport(
            filename=f"rfq-export-{utcnow().date().isoformat()}.csv",
            content=buffer.getvalue(),
            count=len(quotes),
        )
