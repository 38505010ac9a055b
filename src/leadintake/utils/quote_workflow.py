"""Quote request status workflow.

RFQ status workflow:
  pending -> quoted (quote sent to customer)
  pending -> lost   (declined before quoting)
  quoted  -> won    (customer accepts quote)
  quoted  -> lost   (customer rejects quote)
  won, lost         terminal

Staying in the same status is always allowed. Sending a quote is stricter:
it requires the request to be exactly ``pending``.
"""

from typing import Dict, Tuple, Union

from ..errors import InvalidTransitionError
from ..models.quote_request import QuoteStatus

StatusLike = Union[QuoteStatus, str]

VALID_TRANSITIONS: Dict[QuoteStatus, Tuple[QuoteStatus, ...]] = {
    QuoteStatus.PENDING: (QuoteStatus.QUOTED, QuoteStatus.LOST),
    QuoteStatus.QUOTED: (QuoteStatus.WON, QuoteStatus.LOST),
    QuoteStatus.WON: (),
    QuoteStatus.LOST: (),
}


def _coerce(status: StatusLike) -> Union[QuoteStatus, None]:
    try:
        return QuoteStatus(status)
    except ValueError:
        return None


def _label(status: StatusLike) -> str:
    return status.value if isinstance(status, QuoteStatus) else str(status)


def allowed_transitions(current: StatusLike) -> Tuple[QuoteStatus, ...]:
    """Statuses reachable from ``current`` (empty for terminal or unknown)."""
    state = _coerce(current)
    if state is None:
        return ()
    return VALID_TRANSITIONS[state]


def is_terminal(status: StatusLike) -> bool:
    """True when no transitions leave ``status``."""
    state = _coerce(status)
    return state is not None and not VALID_TRANSITIONS[state]


def is_valid_transition(current: StatusLike, new: StatusLike) -> bool:
    """Check whether moving from ``current`` to ``new`` is allowed."""
    current_state = _coerce(current)
    new_state = _coerce(new)
    if current_state is None or new_state is None:
        return False
    if current_state == new_state:
        return True
    return new_state in VALID_TRANSITIONS[current_state]


def ensure_valid_transition(current: StatusLike, new: StatusLike) -> None:
    """Raise InvalidTransitionError unless the transition is allowed.

    Raises:
        InvalidTransitionError: Carrying current, attempted and allowed values.
    """
    if is_valid_transition(current, new):
        return
    raise InvalidTransitionError(
        _label(current),
        _label(new),
        [status.value for status in allowed_transitions(current)],
    )


def ensure_can_send_quote(current: StatusLike) -> None:
    """Require ``pending`` before a quote is sent.

    Re-sending on an already quoted request is rejected even though
    quoted -> quoted is a no-op for plain status updates.

    Raises:
        InvalidTransitionError: If ``current`` is not pending.
    """
    if _coerce(current) == QuoteStatus.PENDING:
        return
    raise InvalidTransitionError(
        _label(current),
        QuoteStatus.QUOTED.value,
        [status.value for status in allowed_transitions(current)],
    )


def describe_workflow() -> str:
    """Human-readable description of the workflow."""
    lines = ["RFQ Status Workflow:"]
    for state, targets in VALID_TRANSITIONS.items():
        if targets:
            for target in targets:
                lines.append(f"  {state.value} -> {target.value}")
        else:
            lines.append(f"  {state.value} -> [terminal]")
    return "\n".join(lines)
