"""Claim coordinator - at-most-once reward distribution per wallet."""

from __future__ import annotations

import asyncio
import logging

from proofdrop.claims.lease import ClaimLeaseRegistry
from proofdrop.errors import ClaimFailedError, ClaimPendingError, RewardError
from proofdrop.interfaces.distributor import RewardDistributor
from proofdrop.interfaces.store import SubmissionStore
from proofdrop.lifecycle.state_machine import Intent, next_status
from proofdrop.lifecycle.wallet import normalize_wallet
from proofdrop.models.records import ClaimResult, DistributionResult

log = logging.getLogger(__name__)


class ClaimCoordinator:
    """Runs reward claims so tokens move at most once per wallet.

    Each attempt holds the wallet's claim lease, re-reads the record, calls
    the distributor, and records the outcome with the store's conditional
    update. The store's compare-and-set is the final arbiter; the lease only
    keeps this process from calling the distributor twice.

    Attempts run as their own tasks. A caller that gives up (timeout or
    disconnect) never cancels a dispatched distribution: the attempt finishes
    in the background and reconciles itself into the store.
    """

    def __init__(
        self,
        store: SubmissionStore,
        distributor: RewardDistributor,
        leases: ClaimLeaseRegistry | None = None,
        claim_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._distributor = distributor
        self._leases = leases or ClaimLeaseRegistry()
        self._claim_timeout = claim_timeout
        self._inflight: set[asyncio.Task] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def claim(self, wallet_address: str) -> ClaimResult:
        """Claim the reward for an approved submission.

        Raises NotFoundError, NotApprovedError or AlreadyClaimedError without
        touching the chain, ClaimFailedError when the distribution failed, and
        ClaimPendingError when it is still running after ``claim_timeout``.
        """
        wallet = normalize_wallet(wallet_address)
        task = asyncio.create_task(self._attempt(wallet), name=f"claim:{wallet}")
        self._inflight.add(task)
        task.add_done_callback(self._on_attempt_done)

        try:
            return await asyncio.wait_for(asyncio.shield(task), self._claim_timeout)
        except asyncio.TimeoutError:
            log.warning(
                "Claim for %s still in flight after %ss; reporting pending",
                wallet, self._claim_timeout,
            )
            await self._store.log_activity(
                "claim_pending",
                f"Claim still processing after {self._claim_timeout}s",
                wallet_address=wallet,
            )
            raise ClaimPendingError(
                "Reward claim is still being processed; check the submission status shortly",
                wallet,
            ) from None

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight attempts so their outcomes reach the store."""
        if not self._inflight:
            return
        log.info("Waiting for %d in-flight claim(s)", len(self._inflight))
        _, pending = await asyncio.wait(set(self._inflight), timeout=timeout)
        if pending:
            log.critical(
                "%d claim(s) still in flight at shutdown; on-chain outcome unknown for: %s",
                len(pending), ", ".join(t.get_name() for t in pending),
            )

    def _on_attempt_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            log.warning("Claim attempt %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, RewardError):
            log.error("Claim attempt %s crashed: %s", task.get_name(), exc, exc_info=exc)

    # ── Attempt ────────────────────────────────────────────

    async def _attempt(self, wallet: str) -> ClaimResult:
        async with self._leases.hold(wallet):
            record = await self._store.find_submission(wallet)
            next_status(record.status if record else None, Intent.CLAIM)

            log.info("Processing reward claim for %s", wallet)
            await self._store.log_activity(
                "claim_dispatched", "Reward distribution dispatched", wallet_address=wallet,
            )
            result = await self._distribute(wallet)

            if not result.success:
                log.error("Reward distribution failed for %s: %s", wallet, result.error)
                await self._store.log_activity(
                    "claim_failed",
                    f"Claim failed: {result.error}",
                    wallet_address=wallet,
                    tx_hash=result.tx_hash,
                )
                raise ClaimFailedError(
                    f"Smart contract transaction failed: {result.error}",
                    wallet,
                    detail=result.error,
                )

            return await self._record_claim(wallet, result.tx_hash)

    async def _distribute(self, wallet: str) -> DistributionResult:
        """Call the distributor, folding every failure mode into a result."""
        try:
            result = await self._distributor.distribute_reward(wallet, True)
        except Exception as exc:
            log.error("Reward distribution raised for %s: %s", wallet, exc, exc_info=True)
            return DistributionResult(success=False, error=str(exc) or type(exc).__name__)

        if result is None:
            return DistributionResult(
                success=False, error="Smart contract call returned an unexpected result",
            )
        if result.success and not result.tx_hash:
            # Tokens may have moved; reconcile on-chain before anyone retries.
            log.critical(
                "Distribution for %s reported success without a transaction id", wallet,
            )
            return DistributionResult(
                success=False, error="distribution reported success without a transaction id",
            )
        return result

    async def _record_claim(self, wallet: str, tx_hash: str) -> ClaimResult:
        try:
            record = await self._store.try_mark_claimed(wallet, tx_hash)
        except RewardError as exc:
            # A concurrent attempt (another instance) won the compare-and-set.
            current = await self._store.find_submission(wallet)
            log.critical(
                "Distribution tx %s for %s not recorded (%s); stored tx is %s",
                tx_hash, wallet, exc, current.transaction_hash if current else None,
            )
            await self._store.log_activity(
                "claim_unrecorded",
                f"Distribution not recorded: {exc}",
                wallet_address=wallet,
                tx_hash=tx_hash,
            )
            raise
        except Exception:
            log.critical(
                "Distribution tx %s for %s succeeded but could not be recorded",
                tx_hash, wallet, exc_info=True,
            )
            raise

        log.info("Reward claimed for %s (tx=%s)", wallet, tx_hash[:16])
        await self._store.log_activity(
            "claim_success", "Reward claimed", wallet_address=wallet, tx_hash=tx_hash,
        )
        return ClaimResult(
            wallet_address=wallet,
            tx_hash=tx_hash,
            claimed_at=record.claimed_at or "",
        )
