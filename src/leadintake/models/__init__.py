"""Lead Intake Database Models.

This module contains SQLAlchemy models for inquiries, quote requests and
the notification queue.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Import models to register them with Base metadata
from .inquiry import Inquiry, InquiryStatus, InquiryType
from .quote_request import (
    BudgetRange,
    ProductCategory,
    QuoteRequest,
    QuoteStatus,
    QuoteTimeline,
)
from .notification import NotificationMessage, NotificationStatus

# Import database utilities
from .database import (
    DatabaseManager,
    init_database,
    close_database,
    create_test_engine,
)

__all__ = [
    # Base class
    "Base",
    "utcnow",
    # Models
    "Inquiry",
    "InquiryStatus",
    "InquiryType",
    "QuoteRequest",
    "QuoteStatus",
    "ProductCategory",
    "BudgetRange",
    "QuoteTimeline",
    "NotificationMessage",
    "NotificationStatus",
    # Database utilities
    "DatabaseManager",
    "init_database",
    "close_database",
    "create_test_engine",
]
