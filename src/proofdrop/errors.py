"""Error taxonomy for submission and reward-claim operations.

Every error raised by the core derives from RewardError. The HTTP layer maps
each class to a status code; ``retryable`` tells callers whether repeating the
same request may succeed without any other change.
"""

from __future__ import annotations


class RewardError(Exception):
    """Base class for all expected, user-facing failures."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ── Validation ─────────────────────────────────────────


class ValidationError(RewardError):
    """Bad or missing input."""


class InvalidAddressError(ValidationError):
    """Wallet address is empty or not a string."""


# ── Lookup ─────────────────────────────────────────────


class NotFoundError(RewardError):
    """No submission exists for the wallet."""


class NotApprovedError(RewardError):
    """Claim attempted on a submission that is pending or rejected."""


# ── Business-rule conflicts ────────────────────────────


class ConflictError(RewardError):
    """Request contradicts the stored lifecycle state."""


class DuplicateSubmissionError(ConflictError):
    pass


class AlreadyClaimedError(ConflictError):
    pass


class InvalidTransitionError(ConflictError):
    """Approve/reject on a submission that was already decided."""


# ── Moderation gate ────────────────────────────────────


class UnauthorizedError(RewardError):
    pass


class ConfigurationError(RewardError):
    """A required server-side setting is missing."""


# ── External collaborator ──────────────────────────────


class CollaboratorError(RewardError):
    """The reward distribution call failed or did not finish in time.

    Local state is unchanged, so the caller may retry the claim.
    """

    retryable = True

    def __init__(self, message: str, wallet_address: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.wallet_address = wallet_address
        self.detail = detail


class ClaimFailedError(CollaboratorError):
    """Distribution reported failure, raised, or returned a malformed result."""


class ClaimPendingError(CollaboratorError):
    """Distribution still in flight when the caller's timeout elapsed."""
