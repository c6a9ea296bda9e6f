"""SQLite alert store for pricealert."""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pricealert.db.base import BaseAlertStore
from pricealert.models import (
    PriceAlert,
    PriceAlertTrigger,
    get_alert_rule,
    utc_now,
)

ALERT_COLUMNS = """
    id, user_id, symbol, alert_type, target_value, current_value,
    is_active, last_triggered, created_at, updated_at, metadata
"""

# Databases created with the older schema describe an alert by an
# uppercase alert_type plus a condition column.
LEGACY_ALERT_TYPES = {
    ("PRICE_TARGET", "ABOVE"): "price_above",
    ("PRICE_TARGET", "BELOW"): "price_below",
    ("PRICE_CHANGE", "ABOVE"): "percent_change_up",
    ("PRICE_CHANGE", "BELOW"): "percent_change_down",
    ("PRICE_CHANGE", "CHANGE_PERCENT"): "percent_change",
}

LEGACY_NAMES = {
    "price_above": ("PRICE_TARGET", "ABOVE"),
    "price_below": ("PRICE_TARGET", "BELOW"),
    "percent_change_up": ("PRICE_CHANGE", "ABOVE"),
    "percent_change_down": ("PRICE_CHANGE", "BELOW"),
    "percent_change": ("PRICE_CHANGE", "CHANGE_PERCENT"),
}

TRIGGER_COLUMNS = """
    id, alert_id, symbol, trigger_price, previous_price,
    change_percent, timestamp, alert_type, user_id
"""


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp, treating naive values as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _alert_type(row: sqlite3.Row) -> str:
    """Registry name for a row, translating older alert_type/condition pairs."""
    alert_type = row["alert_type"]
    if "condition" not in row.keys() or not alert_type.isupper():
        return alert_type
    return LEGACY_ALERT_TYPES.get((alert_type, row["condition"]), alert_type.lower())


def _row_to_alert(row: sqlite3.Row) -> PriceAlert:
    return PriceAlert(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        symbol=row["symbol"],
        alert_type=_alert_type(row),
        target_value=row["target_value"],
        current_value=row["current_value"],
        is_active=bool(row["is_active"]),
        last_triggered=_parse_datetime(row["last_triggered"]),
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
        metadata=json.loads(row["metadata"]) if row["metadata"] else {},
    )


def _row_to_trigger(row: sqlite3.Row) -> PriceAlertTrigger:
    return PriceAlertTrigger(
        id=row["id"],
        alert_id=str(row["alert_id"]),
        symbol=row["symbol"],
        alert_type=row["alert_type"],
        user_id=str(row["user_id"]),
        trigger_price=row["trigger_price"],
        previous_price=row["previous_price"],
        change_percent=row["change_percent"],
        timestamp=_parse_datetime(row["timestamp"]),
    )


class AlertStore(BaseAlertStore):
    """SQLite-based store for price alerts and their trigger history."""

    REQUIRED_TABLES = [
        "price_alerts",
        "price_alert_triggers",
    ]

    RECENT_TRIGGERS_LIMIT = 10

    def __init__(self, db_path: Path, timeout: float = 5.0):
        """Initialize the alert store.

        Args:
            db_path: Path to the SQLite database file.
            timeout: Seconds to wait for a locked database.
        """
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS price_alerts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    alert_type TEXT NOT NULL,
                    target_value REAL NOT NULL,
                    current_value REAL,
                    is_active INTEGER DEFAULT 1,
                    last_triggered TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    metadata TEXT DEFAULT '{}'
                )
            """)

            # Triggers outlive their alert, so no foreign key cascade.
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS price_alert_triggers (
                    id TEXT PRIMARY KEY,
                    alert_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    trigger_price REAL NOT NULL,
                    previous_price REAL NOT NULL,
                    change_percent REAL NOT NULL,
                    timestamp TEXT NOT NULL,
                    alert_type TEXT NOT NULL,
                    user_id TEXT NOT NULL
                )
            """)

            for statement in (
                "CREATE INDEX IF NOT EXISTS idx_price_alerts_user_id ON price_alerts(user_id)",
                "CREATE INDEX IF NOT EXISTS idx_price_alerts_symbol ON price_alerts(symbol)",
                "CREATE INDEX IF NOT EXISTS idx_price_alerts_active ON price_alerts(is_active)",
                "CREATE INDEX IF NOT EXISTS idx_price_alert_triggers_user_id "
                "ON price_alert_triggers(user_id)",
                "CREATE INDEX IF NOT EXISTS idx_price_alert_triggers_timestamp "
                "ON price_alert_triggers(timestamp)",
                "CREATE INDEX IF NOT EXISTS idx_price_alert_triggers_alert_id "
                "ON price_alert_triggers(alert_id)",
            ):
                cursor.execute(statement)

            cursor.execute("PRAGMA table_info(price_alerts)")
            self._has_condition = any(
                row["name"] == "condition" for row in cursor.fetchall()
            )

            conn.commit()
        finally:
            conn.close()

    @property
    def _alert_columns(self) -> str:
        if self._has_condition:
            return f"{ALERT_COLUMNS}, condition"
        return ALERT_COLUMNS

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Monitor contract ====================

    def list_active_alerts(self) -> list[PriceAlert]:
        """Get all active alerts.

        Returns:
            List of alerts with is_active set, oldest first.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {self._alert_columns} FROM price_alerts "
                "WHERE is_active = 1 ORDER BY created_at"
            )
            return [_row_to_alert(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def update_alert(
        self,
        alert_id: str,
        current_value: float,
        is_active: Optional[bool] = None,
    ) -> bool:
        """Update the last observed price (and optionally the active flag).

        Args:
            alert_id: Alert ID.
            current_value: Last observed price.
            is_active: New active flag, or None to leave it unchanged.

        Returns:
            True if the alert exists and was updated.
        """
        now = utc_now().isoformat()
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            if is_active is None:
                cursor.execute(
                    "UPDATE price_alerts SET current_value = ?, updated_at = ? WHERE id = ?",
                    (current_value, now, alert_id),
                )
            else:
                cursor.execute(
                    """
                    UPDATE price_alerts
                    SET current_value = ?, is_active = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (current_value, 1 if is_active else 0, now, alert_id),
                )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def insert_trigger(self, trigger: PriceAlertTrigger) -> None:
        """Append a trigger record.

        Args:
            trigger: Trigger to insert.
        """
        conn = self._get_connection()
        try:
            self._insert_trigger(conn.cursor(), trigger)
            conn.commit()
        finally:
            conn.close()

    def commit_trigger(
        self,
        trigger: PriceAlertTrigger,
        current_value: float,
        deactivate: bool,
    ) -> bool:
        """Insert a trigger and update its alert in one transaction.

        Args:
            trigger: Trigger to insert.
            current_value: Last observed price for the alert.
            deactivate: Retire the alert. Only applies while it is active,
                so a one-shot alert can never be committed as fired twice.

        Returns:
            True if committed, False if nothing was written.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            if deactivate:
                cursor.execute(
                    """
                    UPDATE price_alerts
                    SET current_value = ?, is_active = 0, last_triggered = ?, updated_at = ?
                    WHERE id = ? AND is_active = 1
                    """,
                    (
                        current_value,
                        trigger.timestamp.isoformat(),
                        utc_now().isoformat(),
                        trigger.alert_id,
                    ),
                )
            else:
                cursor.execute(
                    """
                    UPDATE price_alerts
                    SET current_value = ?, last_triggered = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        current_value,
                        trigger.timestamp.isoformat(),
                        utc_now().isoformat(),
                        trigger.alert_id,
                    ),
                )
            if cursor.rowcount == 0:
                conn.rollback()
                return False

            self._insert_trigger(cursor, trigger)
            conn.commit()
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _insert_trigger(self, cursor: sqlite3.Cursor, trigger: PriceAlertTrigger) -> None:
        cursor.execute(
            f"""
            INSERT INTO price_alert_triggers ({TRIGGER_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                trigger.id,
                trigger.alert_id,
                trigger.symbol,
                trigger.trigger_price,
                trigger.previous_price,
                trigger.change_percent,
                trigger.timestamp.isoformat(),
                trigger.alert_type,
                trigger.user_id,
            ),
        )

    # ==================== Alert management ====================

    def create_alert(
        self,
        user_id: str,
        symbol: str,
        alert_type: str,
        target_value: float,
        metadata: Optional[dict[str, Any]] = None,
    ) -> PriceAlert:
        """Create a new active alert.

        Args:
            user_id: Owner reference.
            symbol: Instrument identifier.
            alert_type: Registered alert type.
            target_value: Price or percent threshold (must be positive).
            metadata: Optional display data.

        Returns:
            The created alert.

        Raises:
            ValueError: If the alert type is unknown, cannot be stored in an
                older database, or the target is not positive.
        """
        if get_alert_rule(alert_type) is None:
            raise ValueError(f"Unknown alert type: {alert_type}")
        if self._has_condition and alert_type not in LEGACY_NAMES:
            raise ValueError(f"Alert type {alert_type} is not supported by this database")
        if target_value <= 0:
            raise ValueError("Target value must be positive")

        now = utc_now()
        alert = PriceAlert(
            id=f"alert_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            symbol=symbol,
            alert_type=alert_type,
            target_value=target_value,
            is_active=True,
            created_at=now,
            updated_at=now,
            metadata=metadata or {},
        )

        stored_type = alert.alert_type
        extra: tuple[str, ...] = ()
        if self._has_condition:
            stored_type, condition = LEGACY_NAMES[alert_type]
            extra = (condition,)

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            values = (
                alert.id,
                alert.user_id,
                alert.symbol,
                stored_type,
                alert.target_value,
                None,
                1,
                None,
                alert.created_at.isoformat(),
                alert.updated_at.isoformat(),
                json.dumps(alert.metadata),
            ) + extra
            placeholders = ", ".join("?" * len(values))
            cursor.execute(
                f"INSERT INTO price_alerts ({self._alert_columns}) VALUES ({placeholders})",
                values,
            )
            conn.commit()
            return alert
        finally:
            conn.close()

    def get_alert(self, alert_id: str) -> Optional[PriceAlert]:
        """Get an alert by ID.

        Args:
            alert_id: Alert ID.

        Returns:
            Alert if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {self._alert_columns} FROM price_alerts WHERE id = ?",
                (alert_id,),
            )
            row = cursor.fetchone()
            return _row_to_alert(row) if row else None
        finally:
            conn.close()

    def get_user_alerts(self, user_id: Optional[str] = None) -> list[PriceAlert]:
        """Get alerts, newest first.

        Args:
            user_id: Restrict to one owner, or None for all alerts.

        Returns:
            List of alerts.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            if user_id is None:
                cursor.execute(
                    f"SELECT {self._alert_columns} FROM price_alerts ORDER BY created_at DESC"
                )
            else:
                cursor.execute(
                    f"SELECT {self._alert_columns} FROM price_alerts "
                    "WHERE user_id = ? ORDER BY created_at DESC",
                    (user_id,),
                )
            return [_row_to_alert(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def set_alert_active(self, alert_id: str, is_active: bool) -> bool:
        """Activate or deactivate an alert without touching its price.

        Args:
            alert_id: Alert ID.
            is_active: New active flag.

        Returns:
            True if the alert exists.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE price_alerts SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if is_active else 0, utc_now().isoformat(), alert_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def delete_alert(self, alert_id: str, user_id: Optional[str] = None) -> bool:
        """Delete an alert. Its trigger history is kept.

        Args:
            alert_id: ID of the alert to delete.
            user_id: If given, only delete when the alert belongs to this user.

        Returns:
            True if an alert was deleted.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            if user_id is None:
                cursor.execute("DELETE FROM price_alerts WHERE id = ?", (alert_id,))
            else:
                cursor.execute(
                    "DELETE FROM price_alerts WHERE id = ? AND user_id = ?",
                    (alert_id, user_id),
                )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ==================== Trigger history ====================

    def get_triggers(
        self,
        alert_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[PriceAlertTrigger]:
        """Get trigger history, newest first.

        Args:
            alert_id: Restrict to one alert.
            user_id: Restrict to one owner.
            limit: Maximum number of triggers to return.

        Returns:
            List of triggers.
        """
        clauses = []
        params: list[Any] = []
        if alert_id is not None:
            clauses.append("alert_id = ?")
            params.append(alert_id)
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)

        query = f"SELECT {TRIGGER_COLUMNS} FROM price_alert_triggers"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY timestamp DESC, rowid DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [_row_to_trigger(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Stats ====================

    def get_alert_stats(self, user_id: str) -> dict:
        """Get alert counts and recent triggers for a user.

        Args:
            user_id: Owner reference.

        Returns:
            Dictionary with total_alerts, active_alerts, triggered_alerts
            and recent_triggers.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    COUNT(*) AS total_alerts,
                    COUNT(CASE WHEN is_active = 1 THEN 1 END) AS active_alerts,
                    COUNT(CASE WHEN last_triggered IS NOT NULL THEN 1 END) AS triggered_alerts
                FROM price_alerts
                WHERE user_id = ?
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            stats = {
                "total_alerts": row["total_alerts"],
                "active_alerts": row["active_alerts"],
                "triggered_alerts": row["triggered_alerts"],
            }
        finally:
            conn.close()

        stats["recent_triggers"] = self.get_triggers(
            user_id=user_id, limit=self.RECENT_TRIGGERS_LIMIT
        )
        return stats

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with table record counts.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            stats = {}
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            return stats
        finally:
            conn.close()
