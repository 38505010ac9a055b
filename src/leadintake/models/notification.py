"""NotificationMessage SQLAlchemy model backing the durable email queue."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Text, Integer, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class NotificationStatus(str, Enum):
    """Delivery status of a queued message."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationMessage(Base):
    """SQLAlchemy model representing one queued outbound email.

    Rows are created pending by the orchestrators and afterwards only
    mutated by the notification queue. They are kept for audit and never
    deleted.

    Attributes:
        id: Unique identifier for the message (UUID).
        to_email: Recipient address.
        from_email: Sender address.
        subject: Subject line.
        body_html: Rendered HTML body.
        body_text: Rendered plain-text body.
        template_name: Template used to render the body.
        template_data: Parameters the template was rendered with.
        status: Delivery status.
        attempts: Number of delivery attempts made so far.
        last_attempt_at: When the most recent attempt started.
        error_message: Error text from the most recent failed attempt.
        created_at: When the message was queued.
        sent_at: When the transport accepted the message.
    """

    __tablename__ = "notification_queue"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    to_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    from_email: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    body_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    body_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    template_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    template_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Delivery tracking
    status: Mapped[NotificationStatus] = mapped_column(
        SQLEnum(
            NotificationStatus,
            name="notification_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=NotificationStatus.PENDING,
        index=True
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of the message."""
        return (
            f"<NotificationMessage(id={self.id!r}, to={self.to_email!r}, "
            f"status={self.status.value!r}, attempts={self.attempts!r})>"
        )

    def to_dict(self) -> dict:
        """Convert message to dictionary representation."""
        return {
            "id": self.id,
            "to_email": self.to_email,
            "from_email": self.from_email,
            "subject": self.subject,
            "template_name": self.template_name,
            "template_data": self.template_data or {},
            "status": self.status.value,
            "attempts": self.attempts,
            "last_attempt_at": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }
