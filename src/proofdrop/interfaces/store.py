"""SubmissionStore protocol - durable, atomic storage of submission records."""

from __future__ import annotations

from typing import Protocol

from proofdrop.models.records import (
    ActivityRecord,
    StatusSummary,
    SubmissionRecord,
    SubmissionStatus,
)


class SubmissionStore(Protocol):
    """Single source of truth for submission state.

    Every mutating call is one atomic statement keyed by the canonical wallet
    address; none of them retry internally.
    """

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables and apply additive migrations."""
        ...

    async def close(self) -> None:
        """Close the database connection."""
        ...

    # ── Submissions ────────────────────────────────────────

    async def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        """Insert a pending record. Raises DuplicateSubmissionError if one exists."""
        ...

    async def get_submission(self, wallet_address: str) -> SubmissionRecord:
        """Raises NotFoundError if no record exists."""
        ...

    async def find_submission(self, wallet_address: str) -> SubmissionRecord | None:
        ...

    async def list_submissions(
        self, status: SubmissionStatus | None = None
    ) -> list[SubmissionRecord]:
        """All records, most recently submitted first."""
        ...

    async def list_approved(self) -> list[SubmissionRecord]:
        """Records waiting to be claimed, oldest approval first."""
        ...

    async def transition_approval(
        self, wallet_address: str, approved: bool, notes: str | None
    ) -> SubmissionRecord:
        """Move a pending record to approved/rejected in one conditional update."""
        ...

    async def try_mark_claimed(
        self, wallet_address: str, transaction_hash: str
    ) -> SubmissionRecord:
        """Flip approved -> claimed and store the tx hash, only if still approved."""
        ...

    async def count_by_status(self) -> StatusSummary:
        ...

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        wallet_address: str | None = None,
        tx_hash: str | None = None,
    ) -> None:
        ...

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        ...
