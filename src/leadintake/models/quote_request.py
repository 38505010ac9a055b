"""QuoteRequest SQLAlchemy model for tracking RFQs through the sales workflow."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    Numeric,
    DateTime,
    ForeignKey,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class QuoteStatus(str, Enum):
    """Status of a quote request.

    pending is initial; won and lost are terminal.
    """

    PENDING = "pending"
    QUOTED = "quoted"
    WON = "won"
    LOST = "lost"


class ProductCategory(str, Enum):
    """Product lines a quote can be requested for."""

    DUMA = "duma"
    ARCHER = "archer"
    ARTEMIS = "artemis"
    KALLON = "kallon"
    IROKO = "iroko"


class BudgetRange(str, Enum):
    """Budget bands offered on the RFQ form."""

    UNDER_100K = "<$100K"
    FROM_100K_TO_500K = "$100K-$500K"
    FROM_500K_TO_1M = "$500K-$1M"
    OVER_1M = ">$1M"


class QuoteTimeline(str, Enum):
    """Purchase timeline bands offered on the RFQ form."""

    IMMEDIATE = "immediate"
    THREE_TO_SIX_MONTHS = "3-6_months"
    SIX_TO_TWELVE_MONTHS = "6-12_months"
    OVER_TWELVE_MONTHS = "12+_months"


class QuoteRequest(Base):
    """SQLAlchemy model representing a request for quote (RFQ).

    Status changes are validated by the quote workflow before they are
    written. Quote requests are never deleted.

    Attributes:
        id: Unique identifier for the quote request (UUID).
        inquiry_id: Optional link to the inquiry that originated it.
        product_category: Product line being quoted.
        quantity: Requested unit count.
        budget_range: Budget band selected by the customer.
        timeline: Purchase timeline selected by the customer.
        requirements: Free-text requirements.
        specifications: Structured specification map.
        status: Current workflow status.
        quote_amount: Quoted price in USD.
        quote_sent_at: When the quote was sent.
        decision_date: When the customer decided.
        notes: Internal or customer-facing notes.
    """

    __tablename__ = "quote_requests"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    inquiry_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("inquiries.id"),
        nullable=True,
        index=True,
        comment="Originating inquiry, if any"
    )

    product_category: Mapped[ProductCategory] = mapped_column(
        SQLEnum(
            ProductCategory,
            name="product_category",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True
    )

    quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    budget_range: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    timeline: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    specifications: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict
    )

    # Workflow status
    status: Mapped[QuoteStatus] = mapped_column(
        SQLEnum(
            QuoteStatus,
            name="quote_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=QuoteStatus.PENDING,
        index=True
    )

    quote_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Quoted price in USD"
    )
    quote_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    decision_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow
    )

    def __repr__(self) -> str:
        """Return string representation of the quote request."""
        return (
            f"<QuoteRequest(id={self.id!r}, product={self.product_category.value!r}, "
            f"status={self.status.value!r})>"
        )

    def to_dict(self) -> dict:
        """Convert quote request to dictionary representation."""
        return {
            "id": self.id,
            "inquiry_id": self.inquiry_id,
            "product_category": self.product_category.value,
            "quantity": self.quantity,
            "budget_range": self.budget_range,
            "timeline": self.timeline,
            "requirements": self.requirements,
            "specifications": self.specifications or {},
            "status": self.status.value,
            "quote_amount": float(self.quote_amount) if self.quote_amount is not None else None,
            "quote_sent_at": self.quote_sent_at.isoformat() if self.quote_sent_at else None,
            "decision_date": self.decision_date.isoformat() if self.decision_date else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @property
    def is_closed(self) -> bool:
        """True once the quote has reached a terminal outcome."""
        return self.status in (QuoteStatus.WON, QuoteStatus.LOST)
