"""Internal record types for state persistence and operation results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SubmissionStatus(str, Enum):
    """Lifecycle status of a submission record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLAIMED = "claimed"


@dataclass
class SubmissionRecord:
    """A learner's proof-of-completion submission as persisted in the store."""

    wallet_address: str  # canonical: trimmed, lower-case
    name: str
    proof_link: str
    submitted_at: str = ""  # ISO 8601
    status: SubmissionStatus = SubmissionStatus.PENDING
    moderator_notes: str | None = None
    approved_at: str | None = None
    claimed_at: str | None = None
    transaction_hash: str | None = None
    id: int | None = None

    @property
    def approved(self) -> bool:
        return self.status in (SubmissionStatus.APPROVED, SubmissionStatus.CLAIMED)

    @property
    def claimed(self) -> bool:
        return self.status == SubmissionStatus.CLAIMED


@dataclass
class DistributionResult:
    """Result of a reward distribution call against the on-chain contract."""

    success: bool
    tx_hash: str | None = None
    error: str | None = None


@dataclass
class ClaimResult:
    """Outcome of a successful reward claim."""

    wallet_address: str
    tx_hash: str
    claimed_at: str


@dataclass
class ActivityRecord:
    """A single activity log entry."""

    id: int
    event_type: str
    wallet_address: str | None
    tx_hash: str | None
    message: str
    created_at: str


@dataclass
class StatusSummary:
    """Submission counts per lifecycle status."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    claimed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.approved + self.rejected + self.claimed
