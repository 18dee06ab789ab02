"""SQLite implementation of the SubmissionStore protocol."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from proofdrop.errors import (
    ConflictError,
    DuplicateSubmissionError,
    NotFoundError,
    ValidationError,
)
from proofdrop.lifecycle.state_machine import (
    Intent,
    next_status,
    source_states,
    target_state,
)
from proofdrop.lifecycle.wallet import normalize_wallet
from proofdrop.models.records import (
    ActivityRecord,
    StatusSummary,
    SubmissionRecord,
    SubmissionStatus,
)

log = logging.getLogger(__name__)

SCHEMA = """
-- One record per canonical wallet address
CREATE TABLE IF NOT EXISTS submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    wallet_address TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    proof_link TEXT NOT NULL,
    submitted_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Activity log
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    wallet_address TEXT,
    tx_hash TEXT,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""

# Additive column migrations, applied in order when the column is missing.
# Databases written by earlier releases only ever gain columns.
COLUMN_MIGRATIONS: list[tuple[str, str]] = [
    ("status", "TEXT NOT NULL DEFAULT 'pending'"),
    ("moderator_notes", "TEXT"),
    ("approved_at", "TEXT"),
    ("claimed_at", "TEXT"),
    ("transaction_hash", "TEXT"),
]

POST_MIGRATION_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status);
CREATE INDEX IF NOT EXISTS idx_submissions_submitted ON submissions(submitted_at);
"""

# Stored for legacy rows flagged as claimed without a recorded transaction.
LEGACY_UNRECORDED_TX = "legacy-unrecorded"

TIMESTAMP_COLUMNS = ("submitted_at", "approved_at", "claimed_at")

# Format written by SQLite CURRENT_TIMESTAMP: "YYYY-MM-DD HH:MM:SS"
SQLITE_TIMESTAMP_GLOB = (
    "[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9] [0-9][0-9]:[0-9][0-9]:[0-9][0-9]"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(values) -> str:
    return ",".join("?" for _ in values)


class SQLiteSubmissionStore:
    """SQLite-backed implementation of the SubmissionStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._migrate()
        await self._db.executescript(POST_MIGRATION_INDEXES)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Migrations ─────────────────────────────────────────

    async def _columns(self, table: str) -> set[str]:
        async with self.db.execute(f"PRAGMA table_info({table})") as cur:
            return {row["name"] async for row in cur}

    async def _migrate(self) -> None:
        columns = await self._columns("submissions")
        added = []
        for name, ddl in COLUMN_MIGRATIONS:
            if name not in columns:
                await self.db.execute(f"ALTER TABLE submissions ADD COLUMN {name} {ddl}")
                added.append(name)
        if added:
            log.info("Migrated submissions table: added %s", ", ".join(added))

        # Older databases tracked the lifecycle with approved/claimed flags.
        if "status" in added and "approved" in columns:
            await self._backfill_legacy_status(has_claimed_flag="claimed" in columns)
        await self._normalize_legacy_timestamps()

    async def _normalize_legacy_timestamps(self) -> None:
        """Rewrite SQLite CURRENT_TIMESTAMP values as ISO 8601 UTC.

        Timestamps are compared as text, so every row must use the same format.
        """
        for column in TIMESTAMP_COLUMNS:
            async with self.db.execute(
                f"UPDATE submissions SET {column}=replace({column}, ' ', 'T') || '+00:00'"
                f" WHERE {column} GLOB ?",
                (SQLITE_TIMESTAMP_GLOB,),
            ) as cur:
                if cur.rowcount > 0:
                    log.info("Normalized %d legacy %s value(s)", cur.rowcount, column)

    async def _backfill_legacy_status(self, has_claimed_flag: bool) -> None:
        await self.db.execute(
            "UPDATE submissions SET status='approved' WHERE approved=1 AND status='pending'"
        )
        if not has_claimed_flag:
            return
        async with self.db.execute(
            "SELECT wallet_address FROM submissions"
            " WHERE claimed=1 AND transaction_hash IS NULL"
        ) as cur:
            unrecorded = [row["wallet_address"] async for row in cur]
        for wallet in unrecorded:
            log.warning(
                "Legacy claim for %s has no transaction hash; storing %r",
                wallet, LEGACY_UNRECORDED_TX,
            )
        await self.db.execute(
            "UPDATE submissions SET transaction_hash=?"
            " WHERE claimed=1 AND transaction_hash IS NULL",
            (LEGACY_UNRECORDED_TX,),
        )
        await self.db.execute(
            "UPDATE submissions SET status='claimed',"
            " approved_at=COALESCE(approved_at, claimed_at, submitted_at)"
            " WHERE claimed=1"
        )

    # ── Submissions ────────────────────────────────────────

    async def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        wallet = normalize_wallet(record.wallet_address)
        if not str(record.name or "").strip() or not str(record.proof_link or "").strip():
            raise ValidationError("A submission needs a name and a proof link")
        submitted_at = record.submitted_at or _now()
        async with self.db.execute(
            "INSERT INTO submissions"
            " (wallet_address, name, proof_link, submitted_at, status)"
            " VALUES (?, ?, ?, ?, ?)"
            " ON CONFLICT(wallet_address) DO NOTHING",
            (
                wallet, record.name, record.proof_link, submitted_at,
                SubmissionStatus.PENDING.value,
            ),
        ) as cur:
            inserted = cur.rowcount
        await self.db.commit()

        if inserted == 0:
            raise DuplicateSubmissionError("You have already submitted a proof")
        return await self.get_submission(wallet)

    async def find_submission(self, wallet_address: str) -> SubmissionRecord | None:
        wallet = normalize_wallet(wallet_address)
        async with self.db.execute(
            "SELECT * FROM submissions WHERE wallet_address=?", (wallet,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_submission(row) if row else None

    async def get_submission(self, wallet_address: str) -> SubmissionRecord:
        record = await self.find_submission(wallet_address)
        if record is None:
            raise NotFoundError("No submission found")
        return record

    async def list_submissions(
        self, status: SubmissionStatus | None = None
    ) -> list[SubmissionRecord]:
        if status is not None:
            async with self.db.execute(
                "SELECT * FROM submissions WHERE status=?"
                " ORDER BY submitted_at DESC, id DESC",
                (SubmissionStatus(status).value,),
            ) as cur:
                return [_row_to_submission(row) async for row in cur]
        async with self.db.execute(
            "SELECT * FROM submissions ORDER BY submitted_at DESC, id DESC"
        ) as cur:
            return [_row_to_submission(row) async for row in cur]

    async def list_approved(self) -> list[SubmissionRecord]:
        async with self.db.execute(
            "SELECT * FROM submissions WHERE status=? ORDER BY approved_at, id",
            (SubmissionStatus.APPROVED.value,),
        ) as cur:
            return [_row_to_submission(row) async for row in cur]

    async def transition_approval(
        self, wallet_address: str, approved: bool, notes: str | None
    ) -> SubmissionRecord:
        wallet = normalize_wallet(wallet_address)
        intent = Intent.APPROVE if approved else Intent.REJECT
        sources = [s.value for s in source_states(intent)]
        async with self.db.execute(
            "UPDATE submissions SET status=?, approved_at=?, moderator_notes=?"
            f" WHERE wallet_address=? AND status IN ({_placeholders(sources)})",
            (
                target_state(intent).value,
                _now() if approved else None,
                notes,
                wallet,
                *sources,
            ),
        ) as cur:
            changed = cur.rowcount
        await self.db.commit()

        if changed == 0:
            await self._raise_rejected_transition(wallet, intent)
        return await self.get_submission(wallet)

    async def try_mark_claimed(
        self, wallet_address: str, transaction_hash: str
    ) -> SubmissionRecord:
        wallet = normalize_wallet(wallet_address)
        if not transaction_hash:
            raise ValidationError("A transaction hash is required to mark a claim")
        sources = [s.value for s in source_states(Intent.CLAIM)]
        async with self.db.execute(
            "UPDATE submissions SET status=?, claimed_at=?, transaction_hash=?"
            f" WHERE wallet_address=? AND status IN ({_placeholders(sources)})",
            (
                target_state(Intent.CLAIM).value,
                _now(),
                transaction_hash,
                wallet,
                *sources,
            ),
        ) as cur:
            changed = cur.rowcount
        await self.db.commit()

        if changed == 0:
            await self._raise_rejected_transition(wallet, Intent.CLAIM)
        return await self.get_submission(wallet)

    async def _raise_rejected_transition(self, wallet: str, intent: Intent) -> None:
        """Explain why a conditional update matched no row."""
        current = await self.find_submission(wallet)
        next_status(current.status if current else None, intent)
        # The row moved into a legal source state after the update ran.
        raise ConflictError("Submission changed concurrently; retry the request")

    async def count_by_status(self) -> StatusSummary:
        summary = StatusSummary()
        async with self.db.execute(
            "SELECT status, COUNT(*) AS c FROM submissions GROUP BY status"
        ) as cur:
            async for row in cur:
                setattr(summary, SubmissionStatus(row["status"]).value, row["c"])
        return summary

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        wallet_address: str | None = None,
        tx_hash: str | None = None,
    ) -> None:
        await self.db.execute(
            "INSERT INTO activity_log (event_type, wallet_address, tx_hash, message, created_at)"
            " VALUES (?, ?, ?, ?, ?)",
            (event_type, wallet_address, tx_hash, message, _now()),
        )
        await self.db.commit()

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        async with self.db.execute(
            "SELECT * FROM activity_log ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
        ) as cur:
            return [
                ActivityRecord(
                    id=row["id"],
                    event_type=row["event_type"],
                    wallet_address=row["wallet_address"],
                    tx_hash=row["tx_hash"],
                    message=row["message"],
                    created_at=row["created_at"],
                )
                async for row in cur
            ]


def _row_to_submission(row: aiosqlite.Row) -> SubmissionRecord:
    return SubmissionRecord(
        id=row["id"],
        wallet_address=row["wallet_address"],
        name=row["name"],
        proof_link=row["proof_link"],
        submitted_at=row["submitted_at"],
        status=SubmissionStatus(row["status"]),
        moderator_notes=row["moderator_notes"],
        approved_at=row["approved_at"],
        claimed_at=row["claimed_at"],
        transaction_hash=row["transaction_hash"],
    )
