"""Reward server - wires storage, claims, and the HTTP API together."""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web
from stellar_sdk import Keypair

from proofdrop.api.http import create_app
from proofdrop.api.service import ModeratorGate, SubmissionService
from proofdrop.claims.coordinator import ClaimCoordinator
from proofdrop.models.config import ServiceConfig
from proofdrop.stellar.distributor import SorobanRewardDistributor
from proofdrop.storage.sqlite import SQLiteSubmissionStore

log = logging.getLogger(__name__)

NETWORK_PASSPHRASES = {
    "testnet": "Test SDF Network ; September 2015",
    "mainnet": "Public Global Stellar Network ; September 2015",
}

# Upper bound on how long shutdown waits for dispatched claims
SHUTDOWN_DRAIN_TIMEOUT = 120.0


def network_passphrase(cfg: ServiceConfig) -> str:
    return cfg.network_passphrase or NETWORK_PASSPHRASES.get(cfg.network, "")


class RewardServer:
    """HTTP service for proof submissions, moderation, and reward claims."""

    def __init__(self, cfg: ServiceConfig) -> None:
        self._cfg = cfg
        self._stop_event = asyncio.Event()
        self._runner: web.AppRunner | None = None

        keypair = Keypair.from_secret(cfg.keypair_secret)
        self._public_key = keypair.public_key

        # Core components
        self.store = SQLiteSubmissionStore(cfg.db_path)
        self.distributor = SorobanRewardDistributor(
            cfg.contract_id,
            cfg.rpc_url,
            network_passphrase(cfg),
            keypair,
            function_name=cfg.reward_function,
        )
        self.coordinator = ClaimCoordinator(
            self.store, self.distributor, claim_timeout=cfg.claim_timeout,
        )
        self.gate = ModeratorGate(cfg.moderator_key)
        self.service = SubmissionService(self.store, self.coordinator, self.gate)
        self.app = create_app(self.service)

    async def start(self) -> None:
        """Initialize components and serve until stopped."""
        log.info("Starting proofdrop server")
        log.info("  Address: %s", self._public_key)
        log.info("  Contract: %s", self._cfg.contract_id)
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  DB: %s", self._cfg.db_path)
        if not self.gate.configured:
            log.warning("No moderator key configured; approve/reject requests will fail")

        runner = web.AppRunner(self.app)
        initialized = False
        try:
            await self.store.initialize()
            initialized = True

            await runner.setup()
            self._runner = runner
            site = web.TCPSite(runner, self._cfg.host, self._cfg.port)
            await site.start()
            log.info("Listening on http://%s:%d", self._cfg.host, self._cfg.port)
            await self.store.log_activity("server_started", "Server started")

            await self._stop_event.wait()
        finally:
            # Stop accepting requests before waiting on dispatched claims
            if self._runner is not None:
                await self._runner.cleanup()
            await self.coordinator.drain(SHUTDOWN_DRAIN_TIMEOUT)
            await self.distributor.close()
            if initialized:
                await self.store.log_activity("server_stopped", "Server stopped")
            await self.store.close()
            log.info("Server shut down cleanly")

    async def stop(self) -> None:
        """Signal the server to stop gracefully."""
        log.info("Stop requested")
        self._stop_event.set()


async def run_server(cfg: ServiceConfig) -> None:
    """Entry point for running the server."""
    server = RewardServer(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(server.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await server.start()
