"""
State Machines

Funding request lifecycle. The machine is a pure validator: it holds no
state and never writes; callers pass in the current status and get back
the next one.
"""

import logging
from enum import Enum

from core.errors import InvalidTransition

logger = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    """Funding request status

    Transition rules:
    - DRAFT -> PENDING: submit
    - PENDING -> ACTIVE: approve (posts the linked expense)
    - PENDING -> REJECTED: reject (terminal)
    - ACTIVE -> PENDING_COMPLETION: mark_complete
    - PENDING_COMPLETION -> COMPLETED: verify (terminal)
    """
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PENDING_COMPLETION = "PENDING_COMPLETION"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"

    @classmethod
    def parse(cls, raw: "str | RequestStatus") -> "RequestStatus":
        """Normalise a stored status string

        Older records use lowercase names and 'approved' for ACTIVE.

        Raises:
            ValueError: unknown status
        """
        if isinstance(raw, RequestStatus):
            return raw
        key = (raw or "").strip().upper()
        if key == "APPROVED":
            return cls.ACTIVE
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown request status: '{raw}'") from None

    @property
    def is_funded(self) -> bool:
        """A linked ledger expense exists in exactly these states"""
        return self in FUNDED_STATES

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.REJECTED)


class RequestEvent(str, Enum):
    """Workflow events"""
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    MARK_COMPLETE = "mark_complete"
    VERIFY = "verify"


FUNDED_STATES: frozenset[RequestStatus] = frozenset({
    RequestStatus.ACTIVE,
    RequestStatus.PENDING_COMPLETION,
    RequestStatus.COMPLETED,
})

# (from, event) -> to
TRANSITIONS: dict[tuple[RequestStatus, RequestEvent], RequestStatus] = {
    (RequestStatus.DRAFT, RequestEvent.SUBMIT): RequestStatus.PENDING,
    (RequestStatus.PENDING, RequestEvent.APPROVE): RequestStatus.ACTIVE,
    (RequestStatus.PENDING, RequestEvent.REJECT): RequestStatus.REJECTED,
    (RequestStatus.ACTIVE, RequestEvent.MARK_COMPLETE): RequestStatus.PENDING_COMPLETION,
    (RequestStatus.PENDING_COMPLETION, RequestEvent.VERIFY): RequestStatus.COMPLETED,
}

EVENT_TARGETS: dict[RequestEvent, RequestStatus] = {
    event: target for (_, event), target in TRANSITIONS.items()
}


def _reachable_from(status: RequestStatus) -> set[RequestStatus]:
    """States reachable from `status` through one or more legal transitions"""
    seen: set[RequestStatus] = set()
    frontier = [status]
    while frontier:
        current = frontier.pop()
        for (src, _), dst in TRANSITIONS.items():
            if src == current and dst not in seen:
                seen.add(dst)
                frontier.append(dst)
    return seen


# event -> states in which the event's effect is already in place
_ALREADY_APPLIED: dict[RequestEvent, frozenset[RequestStatus]] = {
    event: frozenset({target} | _reachable_from(target))
    for event, target in EVENT_TARGETS.items()
}


def next_state(current: RequestStatus, event: RequestEvent) -> RequestStatus:
    """Validate a transition

    Re-applying an event whose effect is already in place (e.g. approving
    an ACTIVE or COMPLETED request) returns `current` unchanged.

    Args:
        current: Current status
        event: Requested event

    Returns:
        Next status (== current for an idempotent repeat)

    Raises:
        InvalidTransition: the event is not legal from `current`

    Example:
    ```python
    next_state(RequestStatus.PENDING, RequestEvent.APPROVE)   # ACTIVE
    next_state(RequestStatus.ACTIVE, RequestEvent.APPROVE)    # ACTIVE (no-op)
    next_state(RequestStatus.DRAFT, RequestEvent.APPROVE)     # InvalidTransition
    ```
    """
    target = TRANSITIONS.get((current, event))
    if target is not None:
        return target

    if current in _ALREADY_APPLIED[event]:
        logger.debug(f"{event.value} on {current.value}: already applied")
        return current

    raise InvalidTransition(
        current.value,
        EVENT_TARGETS[event].value,
        reason=f"'{event.value}' is not allowed from {current.value}",
    )


def is_already_applied(current: RequestStatus, event: RequestEvent) -> bool:
    """True when `event` would be an idempotent no-op from `current`"""
    return current in _ALREADY_APPLIED[event]


def allowed_events(current: RequestStatus) -> list[RequestEvent]:
    """Events that move `current` forward"""
    return [event for (src, event) in TRANSITIONS if src == current]
