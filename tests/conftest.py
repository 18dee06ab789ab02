"""Shared fixtures for proofdrop tests."""

from __future__ import annotations

import httpx
import pytest
from aiohttp import web
from pytest_metadata.plugin import metadata_key

from proofdrop.api.http import create_app
from proofdrop.api.service import ModeratorGate, SubmissionService
from proofdrop.claims.coordinator import ClaimCoordinator
from proofdrop.models.config import ServiceConfig
from proofdrop.storage.sqlite import SQLiteSubmissionStore

from tests.mocks import MockDistributor

TEST_SECRET = "SBWVJTD3F5ETMVWCNI7MM4HUAPUSCUXXMUEJZJTPRWRJGXW2BF4SVQTK"
TEST_PUBLIC = "GDNAG4KFFVF5HCSGRWZIXZNL2SR2KBGJSHW2A6FI6DZI62XF6IBLO4GD"

CONTRACT_ID = "CCEDYFIHUCJFITWEOT7BWUO2HBQQ72L244ZXQ4YNOC6FYRDN3MKDQFK7"

MODERATOR_KEY = "test-moderator-key"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add service info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Stellar Testnet (mocked)"
    meta["Reward Contract"] = CONTRACT_ID
    meta["Distributor Account"] = TEST_PUBLIC


def pytest_html_results_summary(prefix, summary, postfix):
    """Note in the report summary that no test touches the live network."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Reward distribution is mocked</strong><br/>"
        f"Contract: {CONTRACT_ID}"
        "</div>"
    )


def make_test_config(**overrides) -> ServiceConfig:
    """Build a ServiceConfig suitable for testing."""
    defaults = dict(
        host="127.0.0.1",
        port=0,
        moderator_key=MODERATOR_KEY,
        claim_timeout=None,
        rpc_url="https://soroban-testnet.stellar.org",
        network_passphrase="Test SDF Network ; September 2015",
        contract_id=CONTRACT_ID,
        keypair_secret=TEST_SECRET,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return ServiceConfig(**defaults)


@pytest.fixture
def test_config():
    """Default ServiceConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteSubmissionStore."""
    s = SQLiteSubmissionStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def mock_distributor():
    return MockDistributor(succeed=True, tx_hash="0xdeadbeef")


@pytest.fixture
def coordinator(store, mock_distributor):
    return ClaimCoordinator(store, mock_distributor)


@pytest.fixture
def service(store, coordinator):
    """SubmissionService wired to the in-memory store and mock distributor."""
    return SubmissionService(store, coordinator, ModeratorGate(MODERATOR_KEY))


@pytest.fixture
async def client(service):
    """httpx client against the real aiohttp app on an ephemeral port."""
    runner = web.AppRunner(create_app(service))
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}", timeout=10) as c:
        yield c
    await runner.cleanup()
