"""Pydantic input models for inquiries and quote requests.

Service methods accept either one of these models or a plain mapping; a
mapping is validated through ``parse_model`` so that callers always see
``leadintake.errors.ValidationError`` rather than pydantic's own error.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models.inquiry import InquiryStatus, InquiryType
from .models.quote_request import BudgetRange, ProductCategory, QuoteStatus, QuoteTimeline

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
UUID_REGEX = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class InquiryCreate(BaseModel):
    """Contact form submission."""

    model_config = ConfigDict(str_strip_whitespace=True)

    inquiry_type: InquiryType = Field(..., description="Inquiry type")
    full_name: str = Field(..., min_length=2, max_length=255, description="Submitter name")
    email: str = Field(..., max_length=255, description="Submitter email address")
    phone: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=255)
    country: str = Field(..., min_length=2, max_length=100, description="Country code or name")
    message: str = Field(..., min_length=10, max_length=2000)
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Additional data such as budget and timeline"
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email address format."""
        if not EMAIL_REGEX.match(v):
            raise ValueError("Invalid email address")
        return v


class InquiryUpdate(BaseModel):
    """Admin update of an inquiry. The lead score is not updatable."""

    model_config = ConfigDict(extra="forbid")

    status: Optional[InquiryStatus] = None
    assigned_to_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("assigned_to_id")
    @classmethod
    def validate_assignee(cls, v: Optional[str]) -> Optional[str]:
        """Assignee must be a UUID when given."""
        if v is not None and not UUID_REGEX.match(v):
            raise ValueError("assigned_to_id must be a UUID")
        return v


class QuoteCreate(BaseModel):
    """Request for quote submission."""

    inquiry_id: Optional[str] = None
    product_category: ProductCategory
    quantity: Optional[int] = Field(default=None, gt=0)
    budget_range: Optional[BudgetRange] = None
    timeline: Optional[QuoteTimeline] = None
    requirements: Optional[str] = Field(default=None, max_length=5000)
    specifications: dict[str, Any] = Field(default_factory=dict)

    @field_validator("inquiry_id")
    @classmethod
    def validate_inquiry_id(cls, v: Optional[str]) -> Optional[str]:
        """Linked inquiry must be a UUID when given."""
        if v is not None and not UUID_REGEX.match(v):
            raise ValueError("inquiry_id must be a UUID")
        return v


def _to_naive_utc(value: Any) -> Any:
    """Accept a date, a date-only string, or an ISO datetime; store naive UTC."""
    if isinstance(value, str) and DATE_ONLY_REGEX.match(value):
        value = date.fromisoformat(value)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class QuoteUpdate(BaseModel):
    """Admin update of a quote request."""

    model_config = ConfigDict(extra="forbid")

    status: Optional[QuoteStatus] = None
    quote_amount: Optional[Decimal] = Field(default=None, gt=0)
    decision_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    specifications: Optional[dict[str, Any]] = None

    @field_validator("decision_date", mode="before")
    @classmethod
    def parse_decision_date(cls, v: Any) -> Any:
        """Accept ``YYYY-MM-DD`` as well as ISO datetimes."""
        return _to_naive_utc(v)

    @field_validator("decision_date")
    @classmethod
    def normalize_decision_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store decision dates as naive UTC."""
        return _to_naive_utc(v)


class SendQuote(BaseModel):
    """Formal quote sent to the customer."""

    quote_amount: Decimal = Field(..., gt=0, description="Quote amount must be positive")
    notes: Optional[str] = Field(default=None, max_length=5000)
    specifications: Optional[dict[str, Any]] = None


def parse_model(schema: Type[SchemaT], payload: Union[SchemaT, Any]) -> SchemaT:
    """Validate ``payload`` into ``schema``.

    Args:
        schema: Pydantic model class.
        payload: An instance of ``schema`` (returned as is) or a mapping.

    Raises:
        ValidationError: With pydantic's error list attached.
    """
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
            }
            for error in e.errors()
        ]
        raise ValidationError("Validation failed", errors=errors) from e
