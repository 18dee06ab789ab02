"""Submission lifecycle state machine.

STATES:

    (none) --submit--> PENDING --approve--> APPROVED --claim--> CLAIMED
                          |
                          +-----reject----> REJECTED

CLAIMED and REJECTED are terminal. PENDING is only reachable by submitting for
a wallet that has no record yet.

The store builds the WHERE clause of every conditional update from
``source_states()``, and classifies a zero-row update with ``next_status()``,
so the rules below are the single authority for both.
"""

from __future__ import annotations

from enum import Enum

from proofdrop.errors import (
    AlreadyClaimedError,
    DuplicateSubmissionError,
    InvalidTransitionError,
    NotApprovedError,
    NotFoundError,
)
from proofdrop.models.records import SubmissionStatus


class Intent(str, Enum):
    """What a caller wants to do with a submission."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    CLAIM = "claim"


TRANSITIONS: dict[Intent, dict[SubmissionStatus, SubmissionStatus]] = {
    Intent.APPROVE: {SubmissionStatus.PENDING: SubmissionStatus.APPROVED},
    Intent.REJECT: {SubmissionStatus.PENDING: SubmissionStatus.REJECTED},
    Intent.CLAIM: {SubmissionStatus.APPROVED: SubmissionStatus.CLAIMED},
}

TERMINAL_STATES = frozenset({SubmissionStatus.CLAIMED, SubmissionStatus.REJECTED})


def is_terminal(status: SubmissionStatus) -> bool:
    return status in TERMINAL_STATES


def source_states(intent: Intent) -> frozenset[SubmissionStatus]:
    """Statuses from which ``intent`` is legal. Empty for SUBMIT (no record)."""
    return frozenset(TRANSITIONS.get(intent, {}))


def target_state(intent: Intent) -> SubmissionStatus:
    """Status a successful ``intent`` always leads to."""
    if intent == Intent.SUBMIT:
        return SubmissionStatus.PENDING
    (target,) = set(TRANSITIONS[intent].values())
    return target


def next_status(current: SubmissionStatus | None, intent: Intent) -> SubmissionStatus:
    """Return the status ``intent`` leads to from ``current``.

    ``current`` is None when no record exists. Raises the taxonomy error that
    describes why the transition is illegal.
    """
    if intent == Intent.SUBMIT:
        if current is not None:
            raise DuplicateSubmissionError("You have already submitted a proof")
        return SubmissionStatus.PENDING

    if current is None:
        if intent == Intent.CLAIM:
            raise NotFoundError("No approved submission found for this wallet address")
        raise NotFoundError("Submission not found")

    target = TRANSITIONS[intent].get(current)
    if target is not None:
        return target

    if intent == Intent.CLAIM:
        if current == SubmissionStatus.CLAIMED:
            raise AlreadyClaimedError("Reward has already been claimed")
        raise NotApprovedError("No approved submission found for this wallet address")

    raise InvalidTransitionError(
        f"Submission is already {current.value}; the decision is final"
    )
