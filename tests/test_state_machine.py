"""Lifecycle transitions and the errors raised for illegal ones."""

from __future__ import annotations

import pytest

from proofdrop.errors import (
    AlreadyClaimedError,
    DuplicateSubmissionError,
    InvalidTransitionError,
    NotApprovedError,
    NotFoundError,
)
from proofdrop.lifecycle.state_machine import (
    Intent,
    is_terminal,
    next_status,
    source_states,
    target_state,
)
from proofdrop.models.records import SubmissionStatus as S


# ── Legal transitions ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "current, intent, expected",
    [
        (None, Intent.SUBMIT, S.PENDING),
        (S.PENDING, Intent.APPROVE, S.APPROVED),
        (S.PENDING, Intent.REJECT, S.REJECTED),
        (S.APPROVED, Intent.CLAIM, S.CLAIMED),
    ],
)
def test_legal_transitions(current, intent, expected):
    assert next_status(current, intent) == expected


def test_source_and_target_states_match_transitions():
    assert source_states(Intent.APPROVE) == {S.PENDING}
    assert source_states(Intent.REJECT) == {S.PENDING}
    assert source_states(Intent.CLAIM) == {S.APPROVED}
    assert source_states(Intent.SUBMIT) == frozenset()
    assert target_state(Intent.CLAIM) == S.CLAIMED
    assert target_state(Intent.SUBMIT) == S.PENDING


def test_terminal_states():
    assert is_terminal(S.CLAIMED)
    assert is_terminal(S.REJECTED)
    assert not is_terminal(S.PENDING)
    assert not is_terminal(S.APPROVED)


# ── Illegal transitions ───────────────────────────────────────────


@pytest.mark.parametrize("current", list(S))
def test_submit_over_existing_record_is_duplicate(current):
    with pytest.raises(DuplicateSubmissionError):
        next_status(current, Intent.SUBMIT)


@pytest.mark.parametrize("intent", [Intent.APPROVE, Intent.REJECT, Intent.CLAIM])
def test_missing_record_is_not_found(intent):
    with pytest.raises(NotFoundError):
        next_status(None, intent)


def test_claim_on_claimed_is_already_claimed():
    with pytest.raises(AlreadyClaimedError, match="already been claimed"):
        next_status(S.CLAIMED, Intent.CLAIM)


@pytest.mark.parametrize("current", [S.PENDING, S.REJECTED])
def test_claim_before_approval_is_not_approved(current):
    with pytest.raises(NotApprovedError):
        next_status(current, Intent.CLAIM)


@pytest.mark.parametrize("current", [S.APPROVED, S.REJECTED, S.CLAIMED])
@pytest.mark.parametrize("intent", [Intent.APPROVE, Intent.REJECT])
def test_decisions_are_final(current, intent):
    with pytest.raises(InvalidTransitionError, match=current.value):
        next_status(current, intent)
