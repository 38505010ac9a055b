"""Exception hierarchy for the lead intake pipeline.

Validation, not-found and transition errors surface directly to callers.
Transport errors are raised by the email transport and caught by the
notification queue, which records them on the message row; they never
reach the request that enqueued the message.
"""

from typing import Any, Iterable, Optional


class LeadIntakeError(Exception):
    """Base exception for all lead intake errors."""

    pass


class ValidationError(LeadIntakeError):
    """Raised when input is malformed. Nothing is persisted."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(LeadIntakeError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} with ID {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class InvalidTransitionError(LeadIntakeError):
    """Raised when a quote status change is not allowed by the workflow.

    Attributes:
        current: Status the quote request is in.
        attempted: Status the caller tried to move to.
        allowed: Statuses reachable from ``current`` (empty when terminal).
    """

    def __init__(self, current: str, attempted: str, allowed: Iterable[str]):
        self.current = current
        self.attempted = attempted
        self.allowed = tuple(allowed)
        allowed_text = ", ".join(self.allowed) if self.allowed else "none (terminal state)"
        super().__init__(
            f'Invalid status transition from "{current}" to "{attempted}". '
            f"Allowed transitions: {allowed_text}"
        )


class TransportError(LeadIntakeError):
    """Base exception for outbound email transport failures."""

    pass


class TransportUnconfiguredError(TransportError):
    """Raised when no email transport is configured. Never retried."""

    pass


class TransportTransientError(TransportError):
    """Raised when a send fails in a way that may succeed on retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
