"""CLI entry point for the proofdrop reward service."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from stellar_sdk import Keypair

from proofdrop.api.service import ModeratorGate, SubmissionService
from proofdrop.claims.coordinator import ClaimCoordinator
from proofdrop.config import load_config
from proofdrop.errors import RewardError
from proofdrop.server import network_passphrase, run_server
from proofdrop.stellar.distributor import SorobanRewardDistributor
from proofdrop.storage.sqlite import SQLiteSubmissionStore


def _require_secret(cfg):
    """Exit with error if no keypair secret is configured."""
    if not cfg.keypair_secret:
        click.echo("Error: No keypair secret configured.", err=True)
        click.echo("Set PROOFDROP_SECRET env var or keypair_secret in config.", err=True)
        sys.exit(1)


def _require_contract(cfg):
    """Exit with error if no contract ID is configured."""
    if not cfg.contract_id:
        click.echo("Error: No contract ID configured.", err=True)
        click.echo("Set PROOFDROP_CONTRACT_ID or contract_id in config.", err=True)
        sys.exit(1)


def _fail(exc: RewardError) -> None:
    click.echo(f"Error: {exc.message}", err=True)
    sys.exit(1)


def _offline_service(store: SQLiteSubmissionStore, cfg) -> SubmissionService:
    """Service for commands that never touch the chain."""
    return SubmissionService(store, None, ModeratorGate(cfg.moderator_key))


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """proofdrop - Proof-of-learning submissions with token rewards."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else _log_level(load_config(config_path).log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("proofdrop").setLevel(level)


# ── Server ─────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Interface to bind (overrides config)")
@click.option("--port", type=int, default=None, help="Port to listen on (overrides config)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the HTTP API server."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    _require_contract(cfg)
    if host:
        cfg.host = host
    if port:
        cfg.port = port

    click.echo(f"Starting proofdrop on {cfg.host}:{cfg.port} ({cfg.network})")
    asyncio.run(run_server(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show service configuration."""
    cfg = load_config(ctx.obj["config_path"])
    timeout = f"{cfg.claim_timeout}s" if cfg.claim_timeout else "none"
    click.echo(f"Listen:     {cfg.host}:{cfg.port}")
    click.echo(f"Network:    {cfg.network}")
    click.echo(f"RPC URL:    {cfg.rpc_url}")
    click.echo(f"Contract:   {cfg.contract_id or '(not set)'}")
    click.echo(f"Function:   {cfg.reward_function}")
    click.echo(f"Claim wait: {timeout}")
    click.echo(f"DB path:    {cfg.db_path}")
    click.echo(f"Secret:     {'***configured***' if cfg.keypair_secret else '(not set)'}")
    click.echo(f"Moderation: {'***configured***' if cfg.moderator_key else '(not set)'}")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show submission counts by status."""
    cfg = load_config(ctx.obj["config_path"])

    async def _stats():
        store = SQLiteSubmissionStore(cfg.db_path)
        await store.initialize()
        try:
            s = await store.count_by_status()
            click.echo(f"Total:      {s.total}")
            click.echo(f"Pending:    {s.pending}")
            click.echo(f"Approved:   {s.approved}")
            click.echo(f"Rejected:   {s.rejected}")
            click.echo(f"Claimed:    {s.claimed}")
        finally:
            await store.close()

    asyncio.run(_stats())


# ── Submissions ────────────────────────────────────────


@cli.command()
@click.option("--status", "filter_status", default=None,
              help="Filter by status (pending, approved, rejected, claimed)")
@click.pass_context
def submissions(ctx: click.Context, filter_status: str | None) -> None:
    """List submissions, newest first."""
    cfg = load_config(ctx.obj["config_path"])

    async def _list():
        store = SQLiteSubmissionStore(cfg.db_path)
        await store.initialize()
        try:
            snapshots = await _offline_service(store, cfg).list_submissions(filter_status)
            if not snapshots:
                click.echo("No submissions.")
                return

            for s in snapshots:
                click.echo(f"  [{s.status:8s}] {s.wallet_address} name={s.name} at={s.submitted_at}")
        except RewardError as exc:
            _fail(exc)
        finally:
            await store.close()

    asyncio.run(_list())


@cli.command()
@click.argument("wallet")
@click.pass_context
def show(ctx: click.Context, wallet: str) -> None:
    """Show one submission."""
    cfg = load_config(ctx.obj["config_path"])

    async def _show():
        store = SQLiteSubmissionStore(cfg.db_path)
        await store.initialize()
        try:
            s = await _offline_service(store, cfg).get_status(wallet)
            click.echo(f"Wallet:     {s.wallet_address}")
            click.echo(f"Name:       {s.name}")
            click.echo(f"Proof:      {s.proof_link}")
            click.echo(f"Status:     {s.status}")
            click.echo(f"Submitted:  {s.submitted_at}")
            if s.approved_at:
                click.echo(f"Decided:    {s.approved_at}")
            if s.moderator_notes:
                click.echo(f"Notes:      {s.moderator_notes}")
            if s.claimed:
                click.echo(f"Claimed:    {s.claimed_at}")
                click.echo(f"Tx hash:    {s.transaction_hash}")
        except RewardError as exc:
            _fail(exc)
        finally:
            await store.close()

    asyncio.run(_show())


def _decide(cfg, wallet: str, approved: bool, notes: str | None) -> None:
    async def _run():
        store = SQLiteSubmissionStore(cfg.db_path)
        await store.initialize()
        try:
            s = await _offline_service(store, cfg).set_approval(
                wallet, approved, notes, None, trusted=True,
            )
            click.echo(f"Submission {s.status}: {s.wallet_address}")
        except RewardError as exc:
            _fail(exc)
        finally:
            await store.close()

    asyncio.run(_run())


@cli.command()
@click.argument("wallet")
@click.option("--notes", default=None, help="Moderator notes stored with the decision")
@click.pass_context
def approve(ctx: click.Context, wallet: str, notes: str | None) -> None:
    """Approve a pending submission."""
    _decide(load_config(ctx.obj["config_path"]), wallet, True, notes)


@cli.command()
@click.argument("wallet")
@click.option("--notes", default=None, help="Moderator notes stored with the decision")
@click.pass_context
def reject(ctx: click.Context, wallet: str, notes: str | None) -> None:
    """Reject a pending submission."""
    _decide(load_config(ctx.obj["config_path"]), wallet, False, notes)


@cli.command()
@click.argument("wallet")
@click.pass_context
def claim(ctx: click.Context, wallet: str) -> None:
    """Distribute the reward for an approved submission.

    Waits for the contract call to finish; a failed call leaves the
    submission approved so the claim can be retried.
    """
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    _require_contract(cfg)

    async def _claim():
        keypair = Keypair.from_secret(cfg.keypair_secret)
        store = SQLiteSubmissionStore(cfg.db_path)
        distributor = SorobanRewardDistributor(
            cfg.contract_id,
            cfg.rpc_url,
            network_passphrase(cfg),
            keypair,
            function_name=cfg.reward_function,
        )
        await store.initialize()
        try:
            coordinator = ClaimCoordinator(store, distributor)
            service = SubmissionService(store, coordinator, ModeratorGate(cfg.moderator_key))
            click.echo(f"Submitting {cfg.reward_function} for {wallet}...")
            result = await service.claim(wallet)
            click.echo("Reward claimed!")
            click.echo(f"  Tx hash:  {result.tx_hash}")
            click.echo(f"  At:       {result.claimed_at}")
        except RewardError as exc:
            _fail(exc)
        finally:
            await distributor.close()
            await store.close()

    asyncio.run(_claim())


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of recent entries to show")
@click.pass_context
def activity(ctx: click.Context, limit: int) -> None:
    """Show the recent activity log."""
    cfg = load_config(ctx.obj["config_path"])

    async def _activity():
        store = SQLiteSubmissionStore(cfg.db_path)
        await store.initialize()
        try:
            entries = await _offline_service(store, cfg).recent_activity(limit)
            if not entries:
                click.echo("No activity recorded.")
                return

            for e in entries:
                line = f"  {e.timestamp} {e.event_type:20s} {e.message}"
                if e.wallet_address:
                    line += f" wallet={e.wallet_address}"
                if e.tx_hash:
                    line += f" tx={e.tx_hash[:16]}..."
                click.echo(line)
        finally:
            await store.close()

    asyncio.run(_activity())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
