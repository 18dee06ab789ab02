"""RewardDistributor protocol - moves reward tokens on-chain."""

from __future__ import annotations

from typing import Protocol

from proofdrop.models.records import DistributionResult


class RewardDistributor(Protocol):
    """Executes the on-chain reward transfer for an approved submission.

    The call may be slow and is not assumed to be idempotent. It is the sole
    authority on whether tokens actually moved.
    """

    async def distribute_reward(self, wallet_address: str, approve: bool) -> DistributionResult:
        """Build, sign and submit the reward transaction for ``wallet_address``."""
        ...
