"""Persistence boundary for the race economy.

The engine never talks to a database directly; it reads and writes through
the :class:`Store` protocol.  Two implementations ship with the package:

- :class:`InMemoryStore` -- dict-backed, used by tests and the demo.
- :class:`SqliteStore` -- a single-file SQLite database.

Both guard every read-modify-write with a lock so balance adjustments,
key consumption and race-status transitions are atomic per store
instance.  :meth:`apply_mutations` writes a batch of balance changes
together with their transactions and activity logs, all or nothing.  Race status transitions are checked here as well, which
is what makes settle-once hold under concurrent callers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Protocol, Sequence

from garage_engine.core.race import RaceMode
from garage_engine.core.rarity import KeyTier
from garage_engine.core.track import TrackType
from garage_engine.errors import (
    AlreadySettledError,
    InsufficientBalanceError,
    RaceStateError,
)

logger = logging.getLogger("garage_engine.store")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class LedgerKind(str, Enum):
    RACE_BET = "race_bet"
    RACE_WIN = "race_win"
    SOLO_RACE_BET = "solo_race_bet"
    SOLO_RACE_WIN = "solo_race_win"
    SOLO_RACE_REFUND = "solo_race_refund"


@dataclass(frozen=True)
class LedgerMutation:
    """One signed balance change plus the transaction it is recorded as.

    Attributes:
        account: Account whose balance changes.
        amount: Signed amount; debits are negative.
        kind: Transaction type.
        race_id: Race the mutation belongs to.
        description: Human-readable description.
        counterparty: The other side of the race, if any.
        track: Track the race was run on.
    """

    account: str
    amount: int
    kind: LedgerKind
    race_id: int
    description: str = ""
    counterparty: str | None = None
    track: TrackType | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError("LedgerMutation.amount must be an int.")


@dataclass(frozen=True)
class ActivityLogEntry:
    account: str
    kind: str
    target: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class KeyInventoryEntry:
    entry_id: int
    account: str
    tier: KeyTier
    quantity: int


class RaceStatus(str, Enum):
    PENDING = "pending"
    BETS_PLACED = "bets_placed"
    RESOLVED = "resolved"
    SETTLED = "settled"
    CANCELLED = "cancelled"


# Showdowns carry no bets and go straight from PENDING to RESOLVED.  A
# pending race whose bets could not be placed is CANCELLED.
ALLOWED_TRANSITIONS: dict[RaceStatus, frozenset[RaceStatus]] = {
    RaceStatus.PENDING: frozenset(
        {RaceStatus.BETS_PLACED, RaceStatus.RESOLVED, RaceStatus.CANCELLED}
    ),
    RaceStatus.BETS_PLACED: frozenset({RaceStatus.RESOLVED}),
    RaceStatus.RESOLVED: frozenset({RaceStatus.SETTLED}),
    RaceStatus.SETTLED: frozenset(),
    RaceStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class RaceRecord:
    """Minimal race row read and written by the engine."""

    race_id: int
    mode: RaceMode
    challenger: str
    opponent: str | None
    bet: int
    track: TrackType
    status: RaceStatus = RaceStatus.PENDING
    winner: str | None = None
    race_data: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None


def check_transition(record: RaceRecord, new_status: RaceStatus) -> None:
    """Raise if *record* may not move to *new_status*.

    Raises:
        AlreadySettledError: If the race is already settled.
        RaceStateError: For any other illegal transition.
    """
    if record.status is RaceStatus.SETTLED:
        raise AlreadySettledError(record.race_id)
    if new_status not in ALLOWED_TRANSITIONS[record.status]:
        raise RaceStateError(
            f"Race {record.race_id} cannot move from "
            f"{record.status.value} to {new_status.value}."
        )


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class Store(Protocol):
    """Everything the economy needs from persistence."""

    def get_account_balance(self, account: str) -> int: ...

    def adjust_account_balance(self, account: str, delta: int) -> int: ...

    def record_transaction(self, mutation: LedgerMutation) -> None: ...

    def record_activity_log(self, entry: ActivityLogEntry) -> None: ...

    def apply_mutations(
        self,
        mutations: Sequence[LedgerMutation],
        activity: Sequence[ActivityLogEntry],
    ) -> None: ...

    def get_or_create_key_entry(self, account: str, tier: KeyTier) -> KeyInventoryEntry: ...

    def increment_key_entry(self, entry_id: int, amount: int = 1) -> KeyInventoryEntry: ...

    def consume_key(self, account: str, tier: KeyTier) -> bool: ...

    def create_race(
        self,
        mode: RaceMode,
        challenger: str,
        opponent: str | None,
        bet: int,
        track: TrackType,
    ) -> RaceRecord: ...

    def get_race(self, race_id: int) -> RaceRecord | None: ...

    def update_race(
        self,
        race_id: int,
        *,
        status: RaceStatus | None = None,
        winner: str | None = None,
        race_data: dict[str, Any] | None = None,
    ) -> RaceRecord: ...

    def list_transactions(self, account: str | None = None) -> list[LedgerMutation]: ...

    def list_activity_logs(self, account: str | None = None) -> list[ActivityLogEntry]: ...

    def list_keys(self, account: str) -> list[KeyInventoryEntry]: ...


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryStore:
    """Dict-backed :class:`Store`.

    Args:
        balances: Optional starting balances per account.
    """

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._lock = threading.RLock()
        self._balances: dict[str, int] = dict(balances or {})
        self._transactions: list[LedgerMutation] = []
        self._activity: list[ActivityLogEntry] = []
        self._keys: dict[int, KeyInventoryEntry] = {}
        self._races: dict[int, RaceRecord] = {}
        self._next_key_id = 1
        self._next_race_id = 1

    # -- Balances ----------------------------------------------------------

    def get_account_balance(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)

    def adjust_account_balance(self, account: str, delta: int) -> int:
        with self._lock:
            balance = self._balances.get(account, 0)
            if balance + delta < 0:
                raise InsufficientBalanceError(account, balance, -delta)
            self._balances[account] = balance + delta
            return balance + delta

    def record_transaction(self, mutation: LedgerMutation) -> None:
        with self._lock:
            self._transactions.append(mutation)

    def record_activity_log(self, entry: ActivityLogEntry) -> None:
        with self._lock:
            self._activity.append(entry)

    def apply_mutations(
        self,
        mutations: Sequence[LedgerMutation],
        activity: Sequence[ActivityLogEntry],
    ) -> None:
        """Apply each mutation with its transaction and activity log, or none."""
        with self._lock:
            balances = dict(self._balances)
            n_transactions, n_activity = len(self._transactions), len(self._activity)
            try:
                for mutation, entry in zip(mutations, activity, strict=True):
                    self.adjust_account_balance(mutation.account, mutation.amount)
                    self.record_transaction(mutation)
                    self.record_activity_log(entry)
            except Exception:
                self._balances = balances
                del self._transactions[n_transactions:]
                del self._activity[n_activity:]
                raise

    # -- Keys --------------------------------------------------------------

    def get_or_create_key_entry(self, account: str, tier: KeyTier) -> KeyInventoryEntry:
        with self._lock:
            for entry in self._keys.values():
                if entry.account == account and entry.tier is tier:
                    return entry
            entry = KeyInventoryEntry(self._next_key_id, account, tier, 0)
            self._keys[entry.entry_id] = entry
            self._next_key_id += 1
            return entry

    def increment_key_entry(self, entry_id: int, amount: int = 1) -> KeyInventoryEntry:
        if amount < 1:
            raise ValueError("amount must be >= 1.")
        with self._lock:
            entry = self._keys.get(entry_id)
            if entry is None:
                raise KeyError(f"No key entry {entry_id}")
            entry = replace(entry, quantity=entry.quantity + amount)
            self._keys[entry_id] = entry
            return entry

    def consume_key(self, account: str, tier: KeyTier) -> bool:
        with self._lock:
            for entry in self._keys.values():
                if entry.account == account and entry.tier is tier:
                    if entry.quantity < 1:
                        return False
                    self._keys[entry.entry_id] = replace(entry, quantity=entry.quantity - 1)
                    return True
            return False

    def list_keys(self, account: str) -> list[KeyInventoryEntry]:
        with self._lock:
            return [e for e in self._keys.values() if e.account == account]

    # -- Races -------------------------------------------------------------

    def create_race(
        self,
        mode: RaceMode,
        challenger: str,
        opponent: str | None,
        bet: int,
        track: TrackType,
    ) -> RaceRecord:
        with self._lock:
            record = RaceRecord(
                race_id=self._next_race_id,
                mode=RaceMode(mode),
                challenger=challenger,
                opponent=opponent,
                bet=bet,
                track=TrackType(track),
            )
            self._races[record.race_id] = record
            self._next_race_id += 1
            return record

    def get_race(self, race_id: int) -> RaceRecord | None:
        with self._lock:
            return self._races.get(race_id)

    def update_race(
        self,
        race_id: int,
        *,
        status: RaceStatus | None = None,
        winner: str | None = None,
        race_data: dict[str, Any] | None = None,
    ) -> RaceRecord:
        with self._lock:
            record = self._races.get(race_id)
            if record is None:
                raise RaceStateError(f"No race {race_id}")
            changes: dict[str, Any] = {}
            if status is not None:
                check_transition(record, status)
                changes["status"] = status
                if status is RaceStatus.RESOLVED:
                    changes["completed_at"] = utc_now()
            if winner is not None:
                changes["winner"] = winner
            if race_data is not None:
                changes["race_data"] = race_data
            record = replace(record, **changes)
            self._races[race_id] = record
            return record

    # -- Listing -----------------------------------------------------------

    def list_transactions(self, account: str | None = None) -> list[LedgerMutation]:
        with self._lock:
            return [m for m in self._transactions if account is None or m.account == account]

    def list_activity_logs(self, account: str | None = None) -> list[ActivityLogEntry]:
        with self._lock:
            return [a for a in self._activity if account is None or a.account == account]


# ---------------------------------------------------------------------------
# SQLite store
# ---------------------------------------------------------------------------


class SqliteStore:
    """SQLite-backed :class:`Store`.

    The connection runs in autocommit mode; read-modify-write changes run
    inside an explicit ``BEGIN IMMEDIATE`` transaction under the store
    lock.

    Args:
        path: Database file path, or ``":memory:"``.
    """

    def __init__(self, path: Path | str = ":memory:") -> None:
        self._path = str(path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._path, isolation_level=None, check_same_thread=False)
        self._create_tables()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")

    def _create_tables(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    account TEXT PRIMARY KEY,
                    balance INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account TEXT NOT NULL,
                    type TEXT NOT NULL,
                    amount INTEGER NOT NULL,
                    race_id INTEGER NOT NULL,
                    description TEXT,
                    counterparty TEXT,
                    track TEXT
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS activity_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account TEXT NOT NULL,
                    type TEXT NOT NULL,
                    target TEXT,
                    details TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_keys (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account TEXT NOT NULL,
                    key_type TEXT NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (account, key_type)
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS races (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mode TEXT NOT NULL,
                    challenger TEXT NOT NULL,
                    opponent TEXT,
                    bet INTEGER NOT NULL,
                    track_type TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    winner TEXT,
                    race_data TEXT,
                    created_at TEXT NOT NULL,
                    completed_at TEXT
                )
                """
            )

    # -- Balances ----------------------------------------------------------

    def _balance(self, account: str) -> int:
        cur = self._conn.execute("SELECT balance FROM accounts WHERE account = ?", (account,))
        row = cur.fetchone()
        return row[0] if row else 0

    def get_account_balance(self, account: str) -> int:
        with self._lock:
            return self._balance(account)

    def _adjust(self, account: str, delta: int) -> int:
        balance = self._balance(account)
        if balance + delta < 0:
            raise InsufficientBalanceError(account, balance, -delta)
        self._conn.execute(
            """
            INSERT INTO accounts (account, balance) VALUES (?, ?)
            ON CONFLICT(account) DO UPDATE SET balance = excluded.balance
            """,
            (account, balance + delta),
        )
        return balance + delta

    def _insert_transaction(self, mutation: LedgerMutation) -> None:
        self._conn.execute(
            """
            INSERT INTO transactions (account, type, amount, race_id, description, counterparty, track)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                mutation.account,
                mutation.kind.value,
                mutation.amount,
                mutation.race_id,
                mutation.description,
                mutation.counterparty,
                mutation.track.value if mutation.track else None,
            ),
        )

    def _insert_activity(self, entry: ActivityLogEntry) -> None:
        self._conn.execute(
            """
            INSERT INTO activity_logs (account, type, target, details, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                entry.account,
                entry.kind,
                entry.target,
                json.dumps(entry.details),
                entry.created_at.isoformat(),
            ),
        )

    def adjust_account_balance(self, account: str, delta: int) -> int:
        with self._transaction():
            return self._adjust(account, delta)

    def record_transaction(self, mutation: LedgerMutation) -> None:
        with self._lock:
            self._insert_transaction(mutation)

    def record_activity_log(self, entry: ActivityLogEntry) -> None:
        with self._lock:
            self._insert_activity(entry)

    def apply_mutations(
        self,
        mutations: Sequence[LedgerMutation],
        activity: Sequence[ActivityLogEntry],
    ) -> None:
        """Apply the whole batch inside one ``BEGIN IMMEDIATE`` transaction."""
        with self._transaction():
            for mutation, entry in zip(mutations, activity, strict=True):
                self._adjust(mutation.account, mutation.amount)
                self._insert_transaction(mutation)
                self._insert_activity(entry)

    # -- Keys --------------------------------------------------------------

    @staticmethod
    def _key_row(row: tuple) -> KeyInventoryEntry:
        return KeyInventoryEntry(entry_id=row[0], account=row[1], tier=KeyTier(row[2]), quantity=row[3])

    def get_or_create_key_entry(self, account: str, tier: KeyTier) -> KeyInventoryEntry:
        with self._transaction():
            self._conn.execute(
                "INSERT OR IGNORE INTO user_keys (account, key_type, quantity) VALUES (?, ?, 0)",
                (account, tier.value),
            )
            cur = self._conn.execute(
                "SELECT id, account, key_type, quantity FROM user_keys WHERE account = ? AND key_type = ?",
                (account, tier.value),
            )
            return self._key_row(cur.fetchone())

    def increment_key_entry(self, entry_id: int, amount: int = 1) -> KeyInventoryEntry:
        if amount < 1:
            raise ValueError("amount must be >= 1.")
        with self._transaction():
            self._conn.execute(
                "UPDATE user_keys SET quantity = quantity + ? WHERE id = ?",
                (amount, entry_id),
            )
            cur = self._conn.execute(
                "SELECT id, account, key_type, quantity FROM user_keys WHERE id = ?",
                (entry_id,),
            )
            row = cur.fetchone()
            if row is None:
                raise KeyError(f"No key entry {entry_id}")
            return self._key_row(row)

    def consume_key(self, account: str, tier: KeyTier) -> bool:
        with self._transaction():
            cur = self._conn.execute(
                """
                UPDATE user_keys SET quantity = quantity - 1
                WHERE account = ? AND key_type = ? AND quantity >= 1
                """,
                (account, tier.value),
            )
            return cur.rowcount == 1

    def list_keys(self, account: str) -> list[KeyInventoryEntry]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT id, account, key_type, quantity FROM user_keys WHERE account = ? ORDER BY id",
                (account,),
            )
            return [self._key_row(row) for row in cur.fetchall()]

    # -- Races -------------------------------------------------------------

    @staticmethod
    def _race_row(row: tuple) -> RaceRecord:
        return RaceRecord(
            race_id=row[0],
            mode=RaceMode(row[1]),
            challenger=row[2],
            opponent=row[3],
            bet=row[4],
            track=TrackType(row[5]),
            status=RaceStatus(row[6]),
            winner=row[7],
            race_data=json.loads(row[8]) if row[8] else None,
            created_at=datetime.fromisoformat(row[9]),
            completed_at=datetime.fromisoformat(row[10]) if row[10] else None,
        )

    _RACE_COLUMNS = (
        "id, mode, challenger, opponent, bet, track_type, status, "
        "winner, race_data, created_at, completed_at"
    )

    def _fetch_race(self, race_id: int) -> RaceRecord | None:
        cur = self._conn.execute(
            f"SELECT {self._RACE_COLUMNS} FROM races WHERE id = ?", (race_id,)
        )
        row = cur.fetchone()
        return self._race_row(row) if row else None

    def create_race(
        self,
        mode: RaceMode,
        challenger: str,
        opponent: str | None,
        bet: int,
        track: TrackType,
    ) -> RaceRecord:
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO races (mode, challenger, opponent, bet, track_type, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    RaceMode(mode).value,
                    challenger,
                    opponent,
                    bet,
                    TrackType(track).value,
                    RaceStatus.PENDING.value,
                    utc_now().isoformat(),
                ),
            )
            return self._fetch_race(cur.lastrowid)

    def get_race(self, race_id: int) -> RaceRecord | None:
        with self._lock:
            return self._fetch_race(race_id)

    def update_race(
        self,
        race_id: int,
        *,
        status: RaceStatus | None = None,
        winner: str | None = None,
        race_data: dict[str, Any] | None = None,
    ) -> RaceRecord:
        with self._transaction():
            record = self._fetch_race(race_id)
            if record is None:
                raise RaceStateError(f"No race {race_id}")
            assignments: list[str] = []
            params: list[Any] = []
            if status is not None:
                check_transition(record, status)
                assignments.append("status = ?")
                params.append(status.value)
                if status is RaceStatus.RESOLVED:
                    assignments.append("completed_at = ?")
                    params.append(utc_now().isoformat())
            if winner is not None:
                assignments.append("winner = ?")
                params.append(winner)
            if race_data is not None:
                assignments.append("race_data = ?")
                params.append(json.dumps(race_data))
            if assignments:
                self._conn.execute(
                    f"UPDATE races SET {', '.join(assignments)} WHERE id = ?",
                    (*params, race_id),
                )
            return self._fetch_race(race_id)

    # -- Listing -----------------------------------------------------------

    def list_transactions(self, account: str | None = None) -> list[LedgerMutation]:
        query = "SELECT account, amount, type, race_id, description, counterparty, track FROM transactions"
        params: tuple[object, ...] = ()
        if account is not None:
            query += " WHERE account = ?"
            params = (account,)
        query += " ORDER BY id"
        with self._lock:
            cur = self._conn.execute(query, params)
            return [
                LedgerMutation(
                    account=row[0],
                    amount=row[1],
                    kind=LedgerKind(row[2]),
                    race_id=row[3],
                    description=row[4] or "",
                    counterparty=row[5],
                    track=TrackType(row[6]) if row[6] else None,
                )
                for row in cur.fetchall()
            ]

    def list_activity_logs(self, account: str | None = None) -> list[ActivityLogEntry]:
        query = "SELECT account, type, target, details, created_at FROM activity_logs"
        params: tuple[object, ...] = ()
        if account is not None:
            query += " WHERE account = ?"
            params = (account,)
        query += " ORDER BY id"
        with self._lock:
            cur = self._conn.execute(query, params)
            return [
                ActivityLogEntry(
                    account=row[0],
                    kind=row[1],
                    target=row[2],
                    details=json.loads(row[3]) if row[3] else {},
                    created_at=datetime.fromisoformat(row[4]),
                )
                for row in cur.fetchall()
            ]
