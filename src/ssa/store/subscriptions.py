"""SQLite persistence for subscriptions and their last notification times."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..core.models import SavedQuery, Subscription
from ..core.timestamps import UTC
from ..utils.logging import get_logger

logger = get_logger(__name__)


class SubscriptionStore:
    """
    SQLite-backed store of scheduled searches.

    The store owns ``last_notification_sent``; the batch runner advances it
    only after a digest was delivered.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = data_dir / "subscriptions.db"
        self.conn = sqlite3.connect(
            str(self.db_path), isolation_level="DEFERRED", check_same_thread=False
        )
        self.conn.execute("PRAGMA journal_mode = WAL")
        self.conn.execute("PRAGMA synchronous = NORMAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS subscriptions (
                subscription_id TEXT PRIMARY KEY,
                email TEXT,
                query_data TEXT NOT NULL,
                frequency_days INTEGER NOT NULL DEFAULT 7,
                last_notification_sent TEXT NOT NULL,
                created_at TEXT NOT NULL,
                is_active BOOLEAN DEFAULT TRUE
            );

            CREATE INDEX IF NOT EXISTS idx_subscriptions_active ON subscriptions(is_active);
            """
        )
        self.conn.commit()

    @staticmethod
    def _from_row(row: tuple) -> Subscription:
        return Subscription(
            subscription_id=row[0],
            email=row[1],
            query=SavedQuery.model_validate_json(row[2]),
            frequency_days=row[3],
            last_notification_sent=UTC.parse(row[4]),
            created_at=UTC.parse(row[5]),
            is_active=bool(row[6]),
        )

    def add(self, subscription: Subscription) -> Subscription:
        self.conn.execute(
            """INSERT OR REPLACE INTO subscriptions
            (subscription_id, email, query_data, frequency_days,
             last_notification_sent, created_at, is_active)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                subscription.subscription_id,
                subscription.email,
                subscription.query.model_dump_json(exclude={"hidden_filters"}),
                subscription.frequency_days,
                UTC.parse(subscription.last_notification_sent).isoformat(),
                UTC.parse(subscription.created_at).isoformat(),
                subscription.is_active,
            ),
        )
        self.conn.commit()
        logger.info(f"Stored subscription {subscription.subscription_id}")
        return subscription

    def get(self, subscription_id: str) -> Optional[Subscription]:
        cur = self.conn.execute(
            """SELECT subscription_id, email, query_data, frequency_days,
                      last_notification_sent, created_at, is_active
                   FROM subscriptions WHERE subscription_id = ?""",
            (subscription_id,),
        )
        row = cur.fetchone()
        return self._from_row(row) if row else None

    def list(
        self,
        active_only: bool = True,
        on_error: Optional[Callable[[str, Exception], None]] = None,
    ) -> List[Subscription]:
        """List subscriptions, skipping rows that no longer validate.

        A skipped row is logged and, when given, passed to ``on_error`` with
        its subscription id so callers can report it.
        """
        sql = """SELECT subscription_id, email, query_data, frequency_days,
                        last_notification_sent, created_at, is_active
                     FROM subscriptions"""
        if active_only:
            sql += " WHERE is_active = TRUE"
        sql += " ORDER BY created_at, subscription_id"
        subscriptions = []
        for row in self.conn.execute(sql).fetchall():
            try:
                subscriptions.append(self._from_row(row))
            except (ValidationError, ValueError) as e:
                logger.error(
                    f"Skipping unreadable subscription {row[0]}: {e}",
                    extra={"subscription_id": row[0]},
                )
                if on_error is not None:
                    on_error(row[0], e)
        return subscriptions

    def mark_notified(self, subscription_id: str, when: datetime) -> None:
        self.conn.execute(
            "UPDATE subscriptions SET last_notification_sent = ? WHERE subscription_id = ?",
            (UTC.parse(when).isoformat(), subscription_id),
        )
        self.conn.commit()

    def deactivate(self, subscription_id: str) -> bool:
        cur = self.conn.execute(
            "UPDATE subscriptions SET is_active = FALSE WHERE subscription_id = ?",
            (subscription_id,),
        )
        self.conn.commit()
        return cur.rowcount > 0

    def close(self) -> None:
        self.conn.close()
