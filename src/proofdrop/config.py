"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from proofdrop.models.config import ServiceConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "PROOFDROP_",
) -> ServiceConfig:
    """Load service configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (PROOFDROP_MODERATOR_KEY, PROOFDROP_SECRET, etc.)
        2. TOML config file
        3. Defaults from ServiceConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = ServiceConfig()

    # ── Server section ─────────────────────────────────────
    server = raw.get("server", {})
    if v := server.get("host"):
        cfg.host = str(v)
    if v := server.get("port"):
        cfg.port = int(v)
    if v := server.get("log_level"):
        cfg.log_level = str(v)

    # ── Moderation section ─────────────────────────────────
    moderation = raw.get("moderation", {})
    if v := moderation.get("moderator_key"):
        cfg.moderator_key = str(v)

    # ── Claims section ─────────────────────────────────────
    claims = raw.get("claims", {})
    if "timeout" in claims:
        cfg.claim_timeout = _timeout(claims["timeout"])

    # ── Stellar section ────────────────────────────────────
    stellar = raw.get("stellar", {})
    if v := stellar.get("network"):
        cfg.network = str(v)
    if v := stellar.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := stellar.get("contract_id"):
        cfg.contract_id = str(v)
    if v := stellar.get("keypair_secret"):
        cfg.keypair_secret = str(v)
    if v := stellar.get("network_passphrase"):
        cfg.network_passphrase = str(v)
    if v := stellar.get("reward_function"):
        cfg.reward_function = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if key := os.environ.get(f"{env_prefix}MODERATOR_KEY"):
        cfg.moderator_key = key
    if secret := os.environ.get(f"{env_prefix}SECRET"):
        cfg.keypair_secret = secret
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.network = net
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if cid := os.environ.get(f"{env_prefix}CONTRACT_ID"):
        cfg.contract_id = cid
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if port := os.environ.get(f"{env_prefix}PORT"):
        cfg.port = int(port)
    if timeout := os.environ.get(f"{env_prefix}CLAIM_TIMEOUT"):
        cfg.claim_timeout = _timeout(timeout)

    # Expand ~ in paths
    cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _timeout(value: object) -> float | None:
    """Seconds as a float; zero or a negative value means wait indefinitely."""
    seconds = float(value)  # type: ignore[arg-type]
    return seconds if seconds > 0 else None
