"""SQLite data store for the ledger."""

import logging
import sqlite3
import uuid
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

from rollpot.db.base import LedgerStore, StoreError
from rollpot.models import TradeRecord, WealthSnapshot

logger = logging.getLogger(__name__)

TRADE_COLUMNS = (
    "id",
    "created_at",
    "trade_date",
    "description",
    "multiplier",
    "stake",
    "outcome",
    "profit_loss",
    "amount_banked",
    "roll_pot_after",
    "bank_total_after",
    "total_wealth_after",
    "trade_number",
)

MONEY_COLUMNS = (
    "multiplier",
    "stake",
    "profit_loss",
    "amount_banked",
    "roll_pot_after",
    "bank_total_after",
    "total_wealth_after",
)


def _row_to_trade(row: sqlite3.Row) -> TradeRecord:
    return TradeRecord(
        id=row["id"],
        trade_number=row["trade_number"],
        created_at=datetime.fromisoformat(row["created_at"]),
        trade_date=date.fromisoformat(row["trade_date"]),
        description=row["description"],
        outcome=row["outcome"],
        **{name: Decimal(row[name]) for name in MONEY_COLUMNS},
    )


def _trade_params(trade: TradeRecord, trade_id: str) -> tuple:
    return (
        trade_id,
        trade.created_at.isoformat(),
        trade.trade_date.isoformat(),
        trade.description,
        str(trade.multiplier),
        str(trade.stake),
        trade.outcome,
        str(trade.profit_loss),
        str(trade.amount_banked),
        str(trade.roll_pot_after),
        str(trade.bank_total_after),
        str(trade.total_wealth_after),
        trade.trade_number,
    )


def _row_to_snapshot(row: sqlite3.Row) -> WealthSnapshot:
    return WealthSnapshot(
        id=row["id"],
        captured_at=datetime.fromisoformat(row["captured_at"]),
        roll_pot=Decimal(row["roll_pot"]),
        bank_total=Decimal(row["bank_total"]),
        total_wealth=Decimal(row["total_wealth"]),
    )


class SQLiteLedgerStore(LedgerStore):
    """SQLite-based ledger store.

    Money columns are stored as TEXT so Decimal values survive a round
    trip unchanged.
    """

    REQUIRED_TABLES = [
        "trades",
        "wealth_snapshots",
    ]

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create {self.db_path.parent}: {e}") from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection.

        Raises:
            StoreError: If the database file cannot be opened.
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL,
                    trade_date TEXT NOT NULL,
                    description TEXT NOT NULL,
                    multiplier TEXT NOT NULL,
                    stake TEXT NOT NULL,
                    outcome TEXT NOT NULL CHECK (outcome IN ('win', 'loss')),
                    profit_loss TEXT NOT NULL DEFAULT '0',
                    amount_banked TEXT NOT NULL DEFAULT '0',
                    roll_pot_after TEXT NOT NULL,
                    bank_total_after TEXT NOT NULL,
                    total_wealth_after TEXT NOT NULL,
                    trade_number INTEGER NOT NULL
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS trades_trade_number_idx ON trades(trade_number DESC)"
            )

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS wealth_snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    captured_at TEXT NOT NULL,
                    roll_pot TEXT NOT NULL,
                    bank_total TEXT NOT NULL,
                    total_wealth TEXT NOT NULL
                )
            """)

            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize schema at {self.db_path}: {e}") from e
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list tables: {e}") from e
        finally:
            conn.close()

    # ==================== Trades ====================

    def _list(self, direction: str) -> list[TradeRecord]:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(TRADE_COLUMNS)} FROM trades "
                f"ORDER BY trade_number {direction}, created_at {direction}"
            )
            return [_row_to_trade(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list trades: {e}") from e
        finally:
            conn.close()

    def list_descending(self) -> list[TradeRecord]:
        """List all trades, newest first.

        Returns:
            Trades ordered by sequence number descending.
        """
        return self._list("DESC")

    def list_ascending(self) -> list[TradeRecord]:
        """List all trades, oldest first.

        Returns:
            Trades ordered by sequence number ascending.
        """
        return self._list("ASC")

    def get_trade(self, trade_id: str) -> Optional[TradeRecord]:
        """Get a trade by identifier.

        Args:
            trade_id: Trade identifier.

        Returns:
            TradeRecord if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(TRADE_COLUMNS)} FROM trades WHERE id = ?",
                (trade_id,),
            )
            row = cursor.fetchone()
            if row:
                return _row_to_trade(row)
            return None
        except sqlite3.Error as e:
            raise StoreError(f"Failed to get trade {trade_id}: {e}") from e
        finally:
            conn.close()

    def insert(self, record: TradeRecord) -> str:
        """Insert a new trade with a fresh identifier.

        Args:
            record: Trade to insert.

        Returns:
            The new identifier.
        """
        trade_id = uuid.uuid4().hex
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO trades ({', '.join(TRADE_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in TRADE_COLUMNS)})",
                _trade_params(record, trade_id),
            )
            conn.commit()
            logger.debug("Inserted trade %s (#%d)", trade_id, record.trade_number)
            return trade_id
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to insert trade: {e}") from e
        finally:
            conn.close()

    def upsert_many(self, records: list[TradeRecord]) -> None:
        """Write recomputed trades in a single transaction.

        Existing rows keep their ``created_at``. Either every record is
        written or none is.

        Args:
            records: Trades with identifiers.
        """
        updatable = [c for c in TRADE_COLUMNS if c not in ("id", "created_at")]
        sql = (
            f"INSERT INTO trades ({', '.join(TRADE_COLUMNS)}) "
            f"VALUES ({', '.join('?' for _ in TRADE_COLUMNS)}) "
            f"ON CONFLICT(id) DO UPDATE SET "
            + ", ".join(f"{c} = excluded.{c}" for c in updatable)
        )
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            for record in records:
                if not record.id:
                    raise StoreError("Cannot upsert a trade without an identifier")
                cursor.execute(sql, _trade_params(record, record.id))
            conn.commit()
            logger.debug("Upserted %d trades", len(records))
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to upsert trades: {e}") from e
        except StoreError:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete_by_id(self, trade_id: str) -> None:
        """Delete a trade.

        Args:
            trade_id: Identifier of the trade to delete.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to delete trade {trade_id}: {e}") from e
        finally:
            conn.close()

    def delete_all(self) -> None:
        """Delete every trade."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM trades")
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to delete trades: {e}") from e
        finally:
            conn.close()

    # ==================== Snapshots ====================

    def save_snapshot(self, snapshot: WealthSnapshot) -> int:
        """Save a wealth snapshot.

        Args:
            snapshot: Snapshot to save.

        Returns:
            The ID of the saved snapshot.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO wealth_snapshots (captured_at, roll_pot, bank_total, total_wealth)
                VALUES (?, ?, ?, ?)
                """,
                (
                    snapshot.captured_at.isoformat(),
                    str(snapshot.roll_pot),
                    str(snapshot.bank_total),
                    str(snapshot.total_wealth),
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to save snapshot: {e}") from e
        finally:
            conn.close()

    def latest_snapshot(self) -> Optional[WealthSnapshot]:
        """Get the most recent wealth snapshot.

        Returns:
            WealthSnapshot if any exist, None otherwise.
        """
        snapshots = self._snapshots(limit=1)
        return snapshots[0] if snapshots else None

    def list_snapshots(self) -> list[WealthSnapshot]:
        """Get all wealth snapshots, newest first."""
        return self._snapshots()

    def _snapshots(self, limit: Optional[int] = None) -> list[WealthSnapshot]:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            sql = """
                SELECT id, captured_at, roll_pot, bank_total, total_wealth
                FROM wealth_snapshots
                ORDER BY captured_at DESC, id DESC
            """
            if limit is not None:
                cursor.execute(sql + " LIMIT ?", (limit,))
            else:
                cursor.execute(sql)
            return [_row_to_snapshot(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list snapshots: {e}") from e
        finally:
            conn.close()
