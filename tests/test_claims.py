"""ClaimCoordinator: at-most-once distribution per wallet."""

from __future__ import annotations

import asyncio

import pytest

from proofdrop.claims.coordinator import ClaimCoordinator
from proofdrop.claims.lease import ClaimLeaseRegistry
from proofdrop.errors import (
    AlreadyClaimedError,
    ClaimFailedError,
    ClaimPendingError,
    NotApprovedError,
    NotFoundError,
)
from proofdrop.models.records import DistributionResult, SubmissionStatus

from tests.factories import WALLET, seed_submission
from tests.mocks import MockDistributor


async def _activity_types(store) -> list[str]:
    return [a.event_type for a in await store.get_recent_activity(100)]


# ── Test 1: Successful claim, then a second claim ─────────────────


async def test_claim_success_then_already_claimed(coordinator, store, mock_distributor):
    """Approved -> claim with tx 0xdeadbeef -> Claimed; second claim rejected."""
    await seed_submission(store, SubmissionStatus.APPROVED)

    result = await coordinator.claim(WALLET)

    assert result.tx_hash == "0xdeadbeef"
    assert result.wallet_address == WALLET
    assert result.claimed_at
    assert mock_distributor.calls == [(WALLET, True)]

    record = await store.get_submission(WALLET)
    assert record.status == SubmissionStatus.CLAIMED
    assert record.transaction_hash == "0xdeadbeef"
    assert record.claimed_at == result.claimed_at

    with pytest.raises(AlreadyClaimedError):
        await coordinator.claim(WALLET)
    assert len(mock_distributor.calls) == 1

    types = await _activity_types(store)
    assert "claim_dispatched" in types
    assert "claim_success" in types


async def test_claim_accepts_any_spelling(coordinator, store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    result = await coordinator.claim(f"  {WALLET.upper()} ")
    assert result.wallet_address == WALLET


# ── Test 2: Distributor failure leaves the record retryable ───────


async def test_failed_distribution_can_be_retried(coordinator, store, mock_distributor):
    await seed_submission(store, SubmissionStatus.APPROVED)
    mock_distributor.succeed = False
    mock_distributor.error = "insufficient funds"

    with pytest.raises(ClaimFailedError) as exc_info:
        await coordinator.claim(WALLET)

    err = exc_info.value
    assert err.retryable
    assert err.detail == "insufficient funds"
    assert "insufficient funds" in err.message

    record = await store.get_submission(WALLET)
    assert record.status == SubmissionStatus.APPROVED
    assert record.transaction_hash is None
    assert "claim_failed" in await _activity_types(store)

    mock_distributor.succeed = True
    result = await coordinator.claim(WALLET)
    assert result.tx_hash == "0xdeadbeef"
    assert len(mock_distributor.calls) == 2


async def test_distributor_exception_is_claim_failed(store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    distributor = MockDistributor(raise_exc=ConnectionError("rpc unreachable"))
    coordinator = ClaimCoordinator(store, distributor)

    with pytest.raises(ClaimFailedError, match="rpc unreachable"):
        await coordinator.claim(WALLET)
    assert (await store.get_submission(WALLET)).status == SubmissionStatus.APPROVED


async def test_success_without_tx_hash_is_not_recorded(store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    coordinator = ClaimCoordinator(store, MockDistributor(tx_hash=None))

    with pytest.raises(ClaimFailedError):
        await coordinator.claim(WALLET)

    record = await store.get_submission(WALLET)
    assert record.status == SubmissionStatus.APPROVED
    assert record.transaction_hash is None


async def test_none_result_is_claim_failed(store):
    class NoneDistributor:
        async def distribute_reward(self, wallet_address, approve):
            return None

    await seed_submission(store, SubmissionStatus.APPROVED)
    with pytest.raises(ClaimFailedError):
        await ClaimCoordinator(store, NoneDistributor()).claim(WALLET)


# ── Test 3: Preconditions never reach the chain ───────────────────


@pytest.mark.parametrize("status", [SubmissionStatus.PENDING, SubmissionStatus.REJECTED])
async def test_claim_before_approval(coordinator, store, mock_distributor, status):
    await seed_submission(store, status)

    with pytest.raises(NotApprovedError):
        await coordinator.claim(WALLET)

    assert mock_distributor.calls == []
    assert (await store.get_submission(WALLET)).status == status


async def test_claim_unknown_wallet(coordinator, mock_distributor):
    with pytest.raises(NotFoundError):
        await coordinator.claim("0xnobody")
    assert mock_distributor.calls == []


# ── Test 4: Concurrency ───────────────────────────────────────────


async def test_concurrent_claims_distribute_once(store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    gate = asyncio.Event()
    distributor = MockDistributor(gate=gate)
    coordinator = ClaimCoordinator(store, distributor)

    attempts = [asyncio.create_task(coordinator.claim(WALLET)) for _ in range(5)]
    await asyncio.sleep(0.05)
    gate.set()
    results = await asyncio.gather(*attempts, return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(isinstance(f, AlreadyClaimedError) for f in failures)
    assert len(distributor.calls) == 1


async def test_claims_for_different_wallets_run_in_parallel(store):
    await seed_submission(store, SubmissionStatus.APPROVED, wallet_address="0xa")
    await seed_submission(store, SubmissionStatus.APPROVED, wallet_address="0xb")
    gate = asyncio.Event()
    distributor = MockDistributor(gate=gate)
    coordinator = ClaimCoordinator(store, distributor)

    a = asyncio.create_task(coordinator.claim("0xa"))
    b = asyncio.create_task(coordinator.claim("0xb"))
    await asyncio.sleep(0.05)

    # Both reached the distributor before either finished
    assert sorted(w for w, _ in distributor.calls) == ["0xa", "0xb"]
    gate.set()
    await asyncio.gather(a, b)


async def test_compare_and_set_decides_between_instances(store):
    """Two coordinators with separate leases (two processes): one records, one is rejected."""
    await seed_submission(store, SubmissionStatus.APPROVED)
    gate = asyncio.Event()
    first = ClaimCoordinator(store, MockDistributor(tx_hash="0xfirst", gate=gate))
    second = ClaimCoordinator(store, MockDistributor(tx_hash="0xsecond", gate=gate))

    a = asyncio.create_task(first.claim(WALLET))
    b = asyncio.create_task(second.claim(WALLET))
    await asyncio.sleep(0.05)
    gate.set()
    results = await asyncio.gather(a, b, return_exceptions=True)

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], AlreadyClaimedError)

    record = await store.get_submission(WALLET)
    assert record.transaction_hash == winners[0].tx_hash
    assert "claim_unrecorded" in await _activity_types(store)


# ── Test 5: Slow distribution ─────────────────────────────────────


async def test_timeout_reports_pending_and_finishes_in_background(store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    gate = asyncio.Event()
    distributor = MockDistributor(gate=gate)
    coordinator = ClaimCoordinator(store, distributor, claim_timeout=0.05)

    with pytest.raises(ClaimPendingError) as exc_info:
        await coordinator.claim(WALLET)
    assert exc_info.value.retryable
    assert coordinator.inflight == 1
    assert (await store.get_submission(WALLET)).status == SubmissionStatus.APPROVED

    gate.set()
    await coordinator.drain()

    assert coordinator.inflight == 0
    record = await store.get_submission(WALLET)
    assert record.status == SubmissionStatus.CLAIMED
    assert record.transaction_hash == "0xdeadbeef"
    assert len(distributor.calls) == 1

    types = await _activity_types(store)
    assert "claim_pending" in types
    assert "claim_success" in types


async def test_caller_cancellation_does_not_cancel_distribution(store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    gate = asyncio.Event()
    coordinator = ClaimCoordinator(store, MockDistributor(gate=gate))

    caller = asyncio.create_task(coordinator.claim(WALLET))
    await asyncio.sleep(0.05)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    gate.set()
    await coordinator.drain()
    assert (await store.get_submission(WALLET)).status == SubmissionStatus.CLAIMED


async def test_drain_with_nothing_inflight(coordinator):
    await coordinator.drain(timeout=0.01)
    assert coordinator.inflight == 0


# ── Test 6: Leases ────────────────────────────────────────────────


async def test_leases_are_released(store):
    await seed_submission(store, SubmissionStatus.APPROVED)
    leases = ClaimLeaseRegistry()
    coordinator = ClaimCoordinator(store, MockDistributor(succeed=False), leases=leases)

    with pytest.raises(ClaimFailedError):
        await coordinator.claim(WALLET)

    assert len(leases) == 0
    assert not leases.is_held(WALLET)


async def test_lease_serializes_holders():
    leases = ClaimLeaseRegistry()
    order: list[str] = []

    async def worker(tag: str):
        async with leases.hold("0xabc"):
            order.append(f"{tag}-in")
            await asyncio.sleep(0.01)
            order.append(f"{tag}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (
        ["a-in", "a-out", "b-in", "b-out"],
        ["b-in", "b-out", "a-in", "a-out"],
    )
    assert len(leases) == 0


async def test_direct_result_object_is_used(store):
    class FailingDistributor:
        async def distribute_reward(self, wallet_address, approve):
            return DistributionResult(success=False, tx_hash="0xfailedtx", error="tx_failed:unknown")

    await seed_submission(store, SubmissionStatus.APPROVED)
    with pytest.raises(ClaimFailedError) as exc_info:
        await ClaimCoordinator(store, FailingDistributor()).claim(WALLET)

    assert exc_info.value.detail == "tx_failed:unknown"
    activity = await store.get_recent_activity(10)
    failed = [a for a in activity if a.event_type == "claim_failed"]
    assert failed[0].tx_hash == "0xfailedtx"
