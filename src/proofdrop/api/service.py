"""Submission service - the use cases behind every HTTP route and CLI command."""

from __future__ import annotations

import hmac
import logging

from proofdrop.claims.coordinator import ClaimCoordinator
from proofdrop.errors import ConfigurationError, UnauthorizedError, ValidationError
from proofdrop.interfaces.store import SubmissionStore
from proofdrop.lifecycle.wallet import normalize_wallet
from proofdrop.models.records import (
    ClaimResult,
    StatusSummary,
    SubmissionRecord,
    SubmissionStatus,
)
from proofdrop.models.snapshots import ActivityEntry, ApprovedEntry, SubmissionSnapshot

log = logging.getLogger(__name__)


def _clean(value: object) -> str:
    """Stringify and trim an optional request field."""
    if value is None:
        return ""
    return str(value).strip()


class ModeratorGate:
    """Shared-secret check for moderation actions."""

    def __init__(self, moderator_key: str) -> None:
        self._key = moderator_key

    @property
    def configured(self) -> bool:
        return bool(self._key)

    def check(self, presented: str | None) -> None:
        if not self._key:
            log.warning("Moderator key not configured; moderation is disabled")
            raise ConfigurationError("Server not configured for moderation")
        if not presented or not hmac.compare_digest(presented.encode(), self._key.encode()):
            raise UnauthorizedError("Unauthorized")


class SubmissionService:
    """Builds JSON-friendly views and runs lifecycle actions.

    This is the sole interface between storage/claims and any client surface.
    """

    def __init__(
        self,
        store: SubmissionStore,
        coordinator: ClaimCoordinator | None,
        gate: ModeratorGate,
    ) -> None:
        self._store = store
        self._coordinator = coordinator
        self._gate = gate

    # ── Submissions ────────────────────────────────────────

    async def submit(self, wallet_address: object, name: object, proof_link: object) -> SubmissionRecord:
        name_s = _clean(name)
        link_s = _clean(proof_link)
        try:
            wallet = normalize_wallet(wallet_address)
        except ValidationError:
            wallet = ""
        if not wallet or not name_s or not link_s:
            raise ValidationError(
                "Missing required fields: walletAddress, name, and proofLink are required"
            )

        record = await self._store.insert_submission(
            SubmissionRecord(wallet_address=wallet, name=name_s, proof_link=link_s)
        )
        log.info("Submission received from %s", wallet)
        await self._store.log_activity(
            "submission_received", f"Proof submitted by {name_s}", wallet_address=wallet,
        )
        return record

    async def get_status(self, wallet_address: object) -> SubmissionSnapshot:
        record = await self._store.get_submission(normalize_wallet(wallet_address))
        return SubmissionSnapshot.from_record(record)

    async def list_submissions(self, status: str | None = None) -> list[SubmissionSnapshot]:
        if status:
            try:
                wanted = SubmissionStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid status: {status}") from None
            records = await self._store.list_submissions(wanted)
        else:
            records = await self._store.list_submissions()
        return [SubmissionSnapshot.from_record(r) for r in records]

    async def list_approved(self) -> list[ApprovedEntry]:
        records = await self._store.list_approved()
        return [ApprovedEntry(wallet_address=r.wallet_address, name=r.name) for r in records]

    async def summary(self) -> StatusSummary:
        return await self._store.count_by_status()

    async def recent_activity(self, limit: int = 20) -> list[ActivityEntry]:
        activity = await self._store.get_recent_activity(limit)
        return [
            ActivityEntry(
                timestamp=a.created_at,
                event_type=a.event_type,
                wallet_address=a.wallet_address,
                tx_hash=a.tx_hash,
                message=a.message,
            )
            for a in activity
        ]

    # ── Actions ────────────────────────────────────────────

    async def set_approval(
        self,
        wallet_address: object,
        approved: object,
        notes: str | None,
        moderator_key: str | None,
        *,
        trusted: bool = False,
    ) -> SubmissionSnapshot:
        """Approve or reject a pending submission.

        ``trusted`` skips the shared-secret gate for operator tooling that
        already has direct access to the database.
        """
        if not trusted:
            self._gate.check(moderator_key)
        if not isinstance(approved, bool):
            raise ValidationError("approved must be true or false")
        wallet = normalize_wallet(wallet_address)
        notes = _clean(notes) or None

        record = await self._store.transition_approval(wallet, approved, notes)
        verb = "approved" if approved else "rejected"
        log.info("Submission %s for %s", verb, wallet)
        await self._store.log_activity(
            f"submission_{verb}",
            f"Submission {verb}" + (f": {notes}" if notes else ""),
            wallet_address=wallet,
        )
        return SubmissionSnapshot.from_record(record)

    async def claim(self, wallet_address: object) -> ClaimResult:
        if self._coordinator is None:
            raise ConfigurationError("Reward distribution is not configured")
        return await self._coordinator.claim(normalize_wallet(wallet_address))
