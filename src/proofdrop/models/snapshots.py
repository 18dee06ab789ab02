"""JSON-serializable snapshot models for the HTTP surface and CLI."""

from __future__ import annotations

from dataclasses import dataclass

from proofdrop.models.records import SubmissionRecord


@dataclass
class SubmissionSnapshot:
    wallet_address: str
    name: str
    proof_link: str
    status: str  # "pending" | "approved" | "rejected" | "claimed"
    submitted: bool
    approved: bool
    claimed: bool
    submitted_at: str
    approved_at: str | None = None
    claimed_at: str | None = None
    transaction_hash: str | None = None
    moderator_notes: str | None = None

    @classmethod
    def from_record(cls, record: SubmissionRecord) -> SubmissionSnapshot:
        return cls(
            wallet_address=record.wallet_address,
            name=record.name,
            proof_link=record.proof_link,
            status=record.status.value,
            submitted=True,
            approved=record.approved,
            claimed=record.claimed,
            submitted_at=record.submitted_at,
            approved_at=record.approved_at,
            claimed_at=record.claimed_at,
            transaction_hash=record.transaction_hash,
            moderator_notes=record.moderator_notes,
        )

    def to_json(self) -> dict:
        return {
            "walletAddress": self.wallet_address,
            "name": self.name,
            "proofLink": self.proof_link,
            "status": self.status,
            "submitted": self.submitted,
            "approved": self.approved,
            "claimed": self.claimed,
            "submittedAt": self.submitted_at,
            "approvedAt": self.approved_at,
            "claimedAt": self.claimed_at,
            "transactionHash": self.transaction_hash,
            "moderatorNotes": self.moderator_notes,
        }


@dataclass
class ApprovedEntry:
    """Wallet waiting in the claim queue."""

    wallet_address: str
    name: str

    def to_json(self) -> dict:
        return {"walletAddress": self.wallet_address, "name": self.name}


@dataclass
class ActivityEntry:
    timestamp: str
    event_type: str
    wallet_address: str | None
    tx_hash: str | None
    message: str

    def to_json(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "eventType": self.event_type,
            "walletAddress": self.wallet_address,
            "txHash": self.tx_hash,
            "message": self.message,
        }
