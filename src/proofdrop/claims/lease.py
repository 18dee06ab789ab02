"""Per-wallet claim leases - in-process mutual exclusion keyed by wallet."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

log = logging.getLogger(__name__)


class _Lease:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0  # tasks holding or waiting for the lock


class ClaimLeaseRegistry:
    """Hands out one asyncio.Lock per wallet while anyone needs it.

    Locks are reference counted and dropped once the last holder or waiter
    leaves, so idle wallets cost nothing. Serialization only covers this
    process; a multi-instance deployment relies on the store's conditional
    update alone.
    """

    def __init__(self) -> None:
        self._leases: dict[str, _Lease] = {}

    def is_held(self, wallet_address: str) -> bool:
        lease = self._leases.get(wallet_address)
        return lease is not None and lease.lock.locked()

    def __len__(self) -> int:
        return len(self._leases)

    @asynccontextmanager
    async def hold(self, wallet_address: str) -> AsyncIterator[None]:
        """Hold the claim lease for ``wallet_address`` for the duration of the block."""
        lease = self._leases.get(wallet_address)
        if lease is None:
            lease = self._leases[wallet_address] = _Lease()
        lease.holders += 1
        try:
            if lease.lock.locked():
                log.debug("Waiting for claim lease on %s", wallet_address[:16])
            async with lease.lock:
                yield
        finally:
            lease.holders -= 1
            if lease.holders == 0:
                self._leases.pop(wallet_address, None)
