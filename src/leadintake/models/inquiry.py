"""Inquiry SQLAlchemy model for storing contact-form submissions."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Text, Integer, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class InquiryType(str, Enum):
    """Kind of contact inquiry selected on the form."""

    GENERAL = "general"
    SALES = "sales"
    SUPPORT = "support"
    PARTNERSHIP = "partnership"


class InquiryStatus(str, Enum):
    """Handling status of an inquiry."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Inquiry(Base):
    """SQLAlchemy model representing a contact-form inquiry.

    The lead score is computed once at creation and never recomputed.
    Inquiries are never hard-deleted; closing one sets its status to
    ``closed``.

    Attributes:
        id: Unique identifier for the inquiry (UUID).
        inquiry_type: General, sales, support or partnership.
        full_name: Submitter's name.
        email: Submitter's email address.
        phone: Optional phone number.
        company: Optional organization name.
        country: Country code as submitted.
        message: Free-text message.
        inquiry_metadata: Arbitrary map (budget and timeline hints).
        lead_score: Priority score 0-100.
        status: Current handling status.
        assigned_to_id: Optional reference to the assigned staff member.
        source: Where the inquiry came from.
        created_at: Timestamp when inquiry was created.
        updated_at: Timestamp when inquiry was last updated.
    """

    __tablename__ = "inquiries"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    inquiry_type: Mapped[InquiryType] = mapped_column(
        SQLEnum(
            InquiryType,
            name="inquiry_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True
    )

    # Contact fields
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # "metadata" is reserved on declarative classes
    inquiry_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
        comment="Additional form data such as budget and timeline hints"
    )

    lead_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="Priority score 0-100, computed once at creation"
    )

    status: Mapped[InquiryStatus] = mapped_column(
        SQLEnum(
            InquiryStatus,
            name="inquiry_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=InquiryStatus.NEW,
        index=True
    )

    assigned_to_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Staff member handling the inquiry"
    )

    # Request provenance
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="website")
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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
        """Return string representation of the inquiry."""
        return (
            f"<Inquiry(id={self.id!r}, email={self.email!r}, "
            f"lead_score={self.lead_score!r}, status={self.status.value!r})>"
        )

    def to_dict(self) -> dict:
        """Convert inquiry to dictionary representation."""
        return {
            "id": self.id,
            "inquiry_type": self.inquiry_type.value,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "country": self.country,
            "message": self.message,
            "metadata": self.inquiry_metadata or {},
            "lead_score": self.lead_score,
            "status": self.status.value,
            "assigned_to_id": self.assigned_to_id,
            "source": self.source,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
