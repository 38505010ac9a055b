"""Lead scoring heuristics for inbound inquiries.

This module converts the attributes of a contact-form inquiry into a
0-100 priority score. The score is additive over independent factors and
clamped at 100:

1. Country: high-priority markets score highest, any other ISO code a little
2. Inquiry type: sales > partnership > support > general
3. Organization: a named company signals a business inquiry
4. Message length: detailed messages are more serious
5. Keywords: high-value procurement terms in the message or company name
6. Budget hint from the form metadata
7. Timeline hint from the form metadata

Scoring is pure and total: missing or malformed optional fields contribute
nothing and never raise.
"""

import re
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

MAX_SCORE = 100

# Internal alert is sent for scores at or above this value
ALERT_THRESHOLD = 40

# Category lower bounds (inclusive)
HIGH_PRIORITY_THRESHOLD = 70
MEDIUM_PRIORITY_THRESHOLD = 40

HIGH_PRIORITY_COUNTRIES: Tuple[str, ...] = ("NG", "ZA", "KE", "GH", "EG", "TZ", "UG", "ET")

COUNTRY_POINTS = {
    "priority": 15,
    "other": 5,
}

INQUIRY_TYPE_POINTS: Dict[str, int] = {
    "sales": 20,
    "partnership": 15,
    "support": 10,
}
DEFAULT_INQUIRY_TYPE_POINTS = 5

COMPANY_POINTS = 10

# (minimum exclusive length, points), longest first
MESSAGE_LENGTH_POINTS: Tuple[Tuple[int, int], ...] = ((200, 10), (100, 5))

HIGH_VALUE_KEYWORDS: Tuple[str, ...] = (
    "purchase", "buy", "budget", "quote", "contract", "procurement",
    "ministry", "government", "military", "defense", "army", "air force",
    "urgent", "immediate", "asap", "tender", "rfp", "rfq",
)
POINTS_PER_KEYWORD = 5
MAX_KEYWORD_POINTS = 20

# (markers, points), checked in order; first match wins
BUDGET_MARKERS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    ((">$1m", "million"), 15),
    (("$500k", "500000"), 10),
    (("$100k", "100000"), 5),
)
TIMELINE_MARKERS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("immediate", "urgent"), 15),
    (("3", "6"), 10),  # 3-6 month windows
)

_ISO_COUNTRY = re.compile(r"^[A-Z]{2}$")


class ScoreCategory(str, Enum):
    """Display bucket for a lead score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SCORE_DESCRIPTIONS: Dict[ScoreCategory, str] = {
    ScoreCategory.HIGH: "High priority - respond within 4 hours",
    ScoreCategory.MEDIUM: "Medium priority - respond within 24 hours",
    ScoreCategory.LOW: "Low priority - respond within 48 hours",
}


def _as_mapping(inquiry: Any) -> Mapping[str, Any]:
    """Accept a pydantic model, a mapping, or anything else (treated as empty)."""
    if isinstance(inquiry, Mapping):
        return inquiry
    model_dump = getattr(inquiry, "model_dump", None)
    if callable(model_dump):
        return model_dump()
    return {}


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def score_country(country: Any) -> int:
    """Points for the submitter's country code."""
    country = _text(country).strip()
    if not country:
        return 0
    if country.upper() in HIGH_PRIORITY_COUNTRIES:
        return COUNTRY_POINTS["priority"]
    if _ISO_COUNTRY.match(country):
        return COUNTRY_POINTS["other"]
    return 0


def score_inquiry_type(inquiry_type: Any) -> int:
    """Points for the inquiry type; unknown types score as general."""
    if isinstance(inquiry_type, Enum):
        inquiry_type = inquiry_type.value
    return INQUIRY_TYPE_POINTS.get(_text(inquiry_type).lower(), DEFAULT_INQUIRY_TYPE_POINTS)


def score_company(company: Any) -> int:
    """Points for naming an organization."""
    return COMPANY_POINTS if _text(company) else 0


def score_message_length(message: Any) -> int:
    """Points for message detail."""
    length = len(_text(message))
    for min_length, points in MESSAGE_LENGTH_POINTS:
        if length > min_length:
            return points
    return 0


def match_keywords(message: Any, company: Any) -> list:
    """Return the distinct high-value keywords found in message or company."""
    message_lower = _text(message).lower()
    company_lower = _text(company).lower()
    return [
        keyword for keyword in HIGH_VALUE_KEYWORDS
        if keyword in message_lower or keyword in company_lower
    ]


def score_keywords(message: Any, company: Any) -> int:
    """Points for high-value keywords, capped."""
    matched = match_keywords(message, company)
    return min(len(matched) * POINTS_PER_KEYWORD, MAX_KEYWORD_POINTS)


def _score_markers(value: Any, markers: Tuple[Tuple[Tuple[str, ...], int], ...]) -> int:
    text = _text(value).lower()
    if not text:
        return 0
    for needles, points in markers:
        if any(needle in text for needle in needles):
            return points
    return 0


def score_budget(metadata: Any) -> int:
    """Points for the budget hint in form metadata."""
    if not isinstance(metadata, Mapping):
        return 0
    return _score_markers(metadata.get("budget"), BUDGET_MARKERS)


def score_timeline(metadata: Any) -> int:
    """Points for the timeline hint in form metadata."""
    if not isinstance(metadata, Mapping):
        return 0
    return _score_markers(metadata.get("timeline"), TIMELINE_MARKERS)


def score_breakdown(inquiry: Any) -> Dict[str, int]:
    """Per-factor points for an inquiry, before clamping.

    Args:
        inquiry: An ``InquiryCreate`` or a mapping with the same keys.

    Returns:
        Dictionary of factor name to points awarded.
    """
    data = _as_mapping(inquiry)
    metadata = data.get("metadata")
    return {
        "country": score_country(data.get("country")),
        "inquiry_type": score_inquiry_type(data.get("inquiry_type")),
        "company": score_company(data.get("company")),
        "message_length": score_message_length(data.get("message")),
        "keywords": score_keywords(data.get("message"), data.get("company")),
        "budget": score_budget(metadata),
        "timeline": score_timeline(metadata),
    }


def calculate_score(inquiry: Any) -> int:
    """Calculate the lead score for an inquiry.

    Args:
        inquiry: An ``InquiryCreate`` or a mapping with the same keys.

    Returns:
        Integer score between 0 and 100 (higher = more priority).

    Example:
        >>> calculate_score({"inquiry_type": "general", "country": "US",
        ...                  "message": "Curious about products."})
        10
    """
    return min(sum(score_breakdown(inquiry).values()), MAX_SCORE)


def score_category(score: int) -> ScoreCategory:
    """Map a score to its display category (lower bounds inclusive)."""
    if score >= HIGH_PRIORITY_THRESHOLD:
        return ScoreCategory.HIGH
    if score >= MEDIUM_PRIORITY_THRESHOLD:
        return ScoreCategory.MEDIUM
    return ScoreCategory.LOW


def score_description(score: int) -> str:
    """Response-time guidance for a score."""
    return SCORE_DESCRIPTIONS[score_category(score)]


def should_alert(score: int) -> bool:
    """True when the operator should be alerted about this lead."""
    return score >= ALERT_THRESHOLD
