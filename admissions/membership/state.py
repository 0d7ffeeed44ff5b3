"""Membership State Machine transition table.

Every status change goes through `next_status`; nothing else decides
which transitions are legal.
"""

from enum import Enum

from admissions.core.exceptions import InvalidStateError
from admissions.membership.models import MembershipStatus


class ReviewAction(str, Enum):
    approve = "approve"
    reject = "reject"
    transfer = "transfer"


TRANSITIONS: dict[MembershipStatus, dict[ReviewAction, MembershipStatus]] = {
    MembershipStatus.pending: {
        ReviewAction.approve: MembershipStatus.approved,
        ReviewAction.reject: MembershipStatus.rejected,
        ReviewAction.transfer: MembershipStatus.transferred,
    },
    MembershipStatus.approved: {
        ReviewAction.transfer: MembershipStatus.transferred,
    },
    MembershipStatus.rejected: {},
    MembershipStatus.transferred: {},
}

# Statuses a user may re-request from, landing back in pending
REOPENABLE: frozenset[MembershipStatus] = frozenset(
    {MembershipStatus.rejected, MembershipStatus.transferred}
)


def next_status(current: MembershipStatus, action: ReviewAction) -> MembershipStatus:
    """Return the status `action` moves a membership in `current` to.

    Raises:
        InvalidStateError: If the table has no such transition.
    """
    target = TRANSITIONS[current].get(action)
    if target is None:
        raise InvalidStateError(
            f"Cannot {action.value} a membership that is {current.value}"
        )
    return target
