"""Configuration models for the reward service."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ServiceConfig:
    """Complete service configuration."""

    # Server
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "info"

    # Moderation
    moderator_key: str = ""  # loaded from env var PROOFDROP_MODERATOR_KEY

    # Claims
    claim_timeout: float | None = 90.0  # seconds; None waits for the contract call

    # Stellar
    network: str = "testnet"
    rpc_url: str = "https://soroban-testnet.stellar.org"
    network_passphrase: str = ""  # derived from network when empty
    contract_id: str = ""  # reward contract ID
    keypair_secret: str = ""  # loaded from env var PROOFDROP_SECRET
    reward_function: str = "grade_submission"

    # Storage
    db_path: str = "~/.proofdrop/submissions.db"
