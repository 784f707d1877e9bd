import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...domain.errors import AccountNotFoundError, SubscriptionConflictError
from ...domain.models import Account, Address, BillingIdentity, Snapshot, Subscription
from ...domain.models.plans import CURRENT_STATUSES
from ...domain.ports.persistence import PersistenceGateway, SubscriptionTransition

logger = logging.getLogger(__name__)

_SNAPSHOT_DATE_FIELDS = (
    "trial_start",
    "trial_end",
    "current_period_start",
    "current_period_end",
    "next_billing_date",
)


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    first_name TEXT,
                    last_name TEXT,
                    national_id TEXT,
                    phone TEXT,
                    address TEXT,
                    snapshot TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id INTEGER NOT NULL,
                    plan TEXT NOT NULL,
                    status TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    billing_interval TEXT NOT NULL,
                    price_id TEXT,
                    amount REAL,
                    currency TEXT,
                    trial_start TEXT,
                    trial_end TEXT,
                    current_period_start TEXT,
                    current_period_end TEXT,
                    next_billing_date TEXT,
                    cancel_at_period_end INTEGER NOT NULL DEFAULT 0,
                    canceled_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(account_id) REFERENCES accounts(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_account_status
                    ON subscriptions(account_id, status);

                CREATE INDEX IF NOT EXISTS idx_subscriptions_next_billing_date
                    ON subscriptions(next_billing_date);

                CREATE UNIQUE INDEX IF NOT EXISTS idx_subscriptions_one_current
                    ON subscriptions(account_id)
                    WHERE status IN ('trialing', 'active');
                """
            )

    def close(self) -> None:
        self._conn.close()

    # AccountRepository API --------------------------------------------------
    def create_account(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Account:
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO accounts (email, first_name, last_name, snapshot, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    email.strip().lower(),
                    first_name,
                    last_name,
                    self._dump_snapshot(Snapshot.free()),
                    now,
                    now,
                ),
            )
            cur = self._conn.execute("SELECT * FROM accounts WHERE id = ?", (cur.lastrowid,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist account.")
        logger.info("Created account %s with free snapshot", row["id"])
        return self._row_to_account(row)

    def get_account(self, account_id: int) -> Optional[Account]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,))
            row = cur.fetchone()
        return self._row_to_account(row) if row else None

    # SubscriptionLedgerRepository API ---------------------------------------
    def get_current_subscription(self, account_id: int) -> Optional[Subscription]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM subscriptions WHERE account_id = ? AND status IN (?, ?)",
                (account_id, *CURRENT_STATUSES),
            )
            row = cur.fetchone()
        return self._row_to_subscription(row) if row else None

    def list_subscriptions(self, account_id: int) -> List[Subscription]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM subscriptions WHERE account_id = ? ORDER BY created_at DESC, id DESC",
                (account_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_subscription(row) for row in rows]

    def list_due_for_period_end(self, now: datetime, limit: int = 500) -> List[Subscription]:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM subscriptions
                WHERE status IN (?, ?)
                  AND cancel_at_period_end = 1
                  AND next_billing_date IS NOT NULL
                  AND next_billing_date <= ?
                ORDER BY next_billing_date ASC
                LIMIT ?
                """,
                (*CURRENT_STATUSES, self._format_datetime(now), limit),
            )
            rows = cur.fetchall()
        return [self._row_to_subscription(row) for row in rows]

    def commit_transition(self, transition: SubscriptionTransition) -> Subscription:
        sub = transition.subscription
        now = self._now()
        values = (
            sub.plan,
            sub.status,
            sub.provider,
            sub.billing_interval,
            sub.price_id,
            sub.amount,
            sub.currency,
            self._format_datetime(sub.trial_start),
            self._format_datetime(sub.trial_end),
            self._format_datetime(sub.current_period_start),
            self._format_datetime(sub.current_period_end),
            self._format_datetime(sub.next_billing_date),
            int(sub.cancel_at_period_end),
            self._format_datetime(sub.canceled_at),
        )
        with self._lock, self._conn:
            if sub.id is None:
                try:
                    cur = self._conn.execute(
                        """
                        INSERT INTO subscriptions (
                            plan, status, provider, billing_interval, price_id, amount,
                            currency, trial_start, trial_end, current_period_start,
                            current_period_end, next_billing_date, cancel_at_period_end,
                            canceled_at, account_id, created_at, updated_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (*values, transition.account_id, now, now),
                    )
                except sqlite3.IntegrityError as exc:
                    if "FOREIGN KEY" in str(exc):
                        raise AccountNotFoundError(transition.account_id) from exc
                    # Another writer committed a current entry for this account first.
                    raise SubscriptionConflictError(transition.account_id) from exc
                subscription_id = cur.lastrowid
            else:
                cur = self._conn.execute(
                    """
                    UPDATE subscriptions
                    SET plan = ?, status = ?, provider = ?, billing_interval = ?,
                        price_id = ?, amount = ?, currency = ?, trial_start = ?,
                        trial_end = ?, current_period_start = ?, current_period_end = ?,
                        next_billing_date = ?, cancel_at_period_end = ?, canceled_at = ?,
                        updated_at = ?
                    WHERE id = ? AND account_id = ?
                    """,
                    (*values, now, sub.id, transition.account_id),
                )
                if cur.rowcount != 1:
                    raise RuntimeError(f"Subscription {sub.id} does not belong to account {transition.account_id}.")
                subscription_id = sub.id

            assignments = ["snapshot = ?", "updated_at = ?"]
            params: List[Any] = [self._dump_snapshot(transition.snapshot), now]
            patch = transition.identity_patch
            # Identity columns are only filled while still empty.
            if patch.national_id is not None:
                assignments.append("national_id = COALESCE(NULLIF(national_id, ''), ?)")
                params.append(patch.national_id)
            if patch.phone is not None:
                assignments.append("phone = COALESCE(NULLIF(phone, ''), ?)")
                params.append(patch.phone)
            if patch.address is not None:
                assignments.append("address = COALESCE(NULLIF(address, ''), ?)")
                params.append(json.dumps(patch.address.to_dict(), ensure_ascii=False))
            params.append(transition.account_id)
            cur = self._conn.execute(
                f"UPDATE accounts SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
            if cur.rowcount != 1:
                raise AccountNotFoundError(transition.account_id)

            cur = self._conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist subscription.")
        return self._row_to_subscription(row)

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _format_datetime(value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _dump_snapshot(self, snapshot: Snapshot) -> str:
        data: Dict[str, Any] = {"plan": snapshot.plan, "status": snapshot.status}
        if snapshot.provider is not None:
            data["provider"] = snapshot.provider
        if snapshot.billing_interval is not None:
            data["billing_interval"] = snapshot.billing_interval
        for name in _SNAPSHOT_DATE_FIELDS:
            value = getattr(snapshot, name)
            if value is not None:
                data[name] = self._format_datetime(value)
        return json.dumps(data)

    def _load_snapshot(self, raw: Optional[str]) -> Snapshot:
        if not raw:
            return Snapshot.free()
        data = json.loads(raw)
        return Snapshot(
            plan=data["plan"],
            status=data["status"],
            provider=data.get("provider"),
            billing_interval=data.get("billing_interval"),
            **{name: self._parse_datetime(data.get(name)) for name in _SNAPSHOT_DATE_FIELDS},
        )

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        address = Address.from_dict(json.loads(row["address"])) if row["address"] else None
        return Account(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            billing_identity=BillingIdentity(
                national_id=row["national_id"],
                phone=row["phone"],
                address=address,
            ),
            snapshot=self._load_snapshot(row["snapshot"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            account_id=row["account_id"],
            plan=row["plan"],
            status=row["status"],
            provider=row["provider"],
            billing_interval=row["billing_interval"],
            price_id=row["price_id"],
            amount=row["amount"],
            currency=row["currency"],
            trial_start=self._parse_datetime(row["trial_start"]),
            trial_end=self._parse_datetime(row["trial_end"]),
            current_period_start=self._parse_datetime(row["current_period_start"]),
            current_period_end=self._parse_datetime(row["current_period_end"]),
            next_billing_date=self._parse_datetime(row["next_billing_date"]),
            cancel_at_period_end=bool(row["cancel_at_period_end"]),
            canceled_at=self._parse_datetime(row["canceled_at"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
