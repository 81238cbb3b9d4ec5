"""SQLite persistence layer for covered call positions."""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, Optional

from .constants import DEFAULT_DB_PATH, SCHEMA_VERSION
from .models import Position, UserContext
from .state import PositionStatus

logger = logging.getLogger(__name__)


def _dec(value: Optional[Decimal]) -> Optional[str]:
    """Decimals are stored as TEXT so they round-trip exactly."""
    return None if value is None else str(value)


def _ts(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat()


class PositionRepository:
    """
    SQLite persistence for positions.

    Every query is scoped to the calling user's id. Each public method
    opens its own connection and performs at most one row mutation, so
    concurrent edits to the same position resolve as last-write-wins.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """
        Initialize the repository.

        Args:
            db_path: Path to SQLite database file. Supports ~ expansion.
                ":memory:" is not supported because each call reconnects.
        """
        self.db_path = os.path.expanduser(db_path)
        self._ensure_directory()
        self._init_database()

    def _ensure_directory(self) -> None:
        """Create database directory if it doesn't exist."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
            logger.info(f"Created database directory: {db_dir}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Create tables if they don't exist."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS positions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    account TEXT NOT NULL,
                    ticker TEXT NOT NULL,
                    strike_price TEXT NOT NULL,
                    stock_price TEXT NOT NULL,
                    option_ticker TEXT,
                    quantity INTEGER NOT NULL,
                    open_date TEXT NOT NULL,
                    expiration_date TEXT NOT NULL,
                    premium_per_contract TEXT NOT NULL,
                    fees TEXT NOT NULL DEFAULT '0',
                    current_option_price TEXT NOT NULL DEFAULT '0',
                    status TEXT NOT NULL DEFAULT 'Open'
                        CHECK(status IN ('Open', 'Closed')),
                    closed_at TEXT,
                    close_price TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_positions_user
                    ON positions(user_id);
                CREATE INDEX IF NOT EXISTS idx_positions_user_status
                    ON positions(user_id, status);
            """
            )
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (SCHEMA_VERSION, datetime.now().isoformat()),
            )
        logger.debug(f"Database initialized at {self.db_path}")

    def schema_version(self) -> int:
        """Highest applied schema version."""
        with self._connect() as conn:
            row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
            return int(row["version"] or 0)

    # Position operations

    def create(self, user: UserContext, position: Position) -> Position:
        """
        Insert a position for the user.

        Timestamps already set on the position (e.g. from a backup) are
        kept; missing ones are stamped with the current time.

        Args:
            user: Owning user
            position: Position to insert (id will be set)

        Returns:
            Position with assigned id and timestamps
        """
        now = datetime.now()
        created_at = position.created_at or now
        updated_at = position.updated_at or now
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO positions
                (user_id, account, ticker, strike_price, stock_price, option_ticker,
                 quantity, open_date, expiration_date, premium_per_contract, fees,
                 current_option_price, status, closed_at, close_price,
                 created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.user_id,
                    position.account,
                    position.ticker.upper(),
                    _dec(position.strike_price),
                    _dec(position.stock_price),
                    position.option_ticker,
                    position.quantity,
                    position.open_date.isoformat(),
                    position.expiration_date.isoformat(),
                    _dec(position.premium_per_contract),
                    _dec(position.fees),
                    _dec(position.current_option_price),
                    position.status.value,
                    _ts(position.closed_at),
                    _dec(position.close_price),
                    created_at.isoformat(),
                    updated_at.isoformat(),
                ),
            )
            position.id = cursor.lastrowid
        position.ticker = position.ticker.upper()
        position.created_at = created_at
        position.updated_at = updated_at
        logger.info(
            f"Created position #{position.id} for {position.ticker} "
            f"${position.strike_price} call exp {position.expiration_date}"
        )
        return position

    def get(self, user: UserContext, position_id: int) -> Optional[Position]:
        """
        Get a position by id, only if it belongs to the user.

        Returns:
            Position if found, None otherwise.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM positions WHERE id = ? AND user_id = ?",
                (position_id, user.user_id),
            ).fetchone()
            if row:
                return self._row_to_position(row)
        return None

    def list_positions(
        self, user: UserContext, status: Optional[PositionStatus] = None
    ) -> list[Position]:
        """
        List the user's positions, newest first.

        Args:
            user: Owning user
            status: Optional status filter
        """
        with self._connect() as conn:
            if status is not None:
                rows = conn.execute(
                    "SELECT * FROM positions WHERE user_id = ? AND status = ? "
                    "ORDER BY created_at DESC, id DESC",
                    (user.user_id, status.value),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM positions WHERE user_id = ? "
                    "ORDER BY created_at DESC, id DESC",
                    (user.user_id,),
                ).fetchall()
            return [self._row_to_position(row) for row in rows]

    def update(self, user: UserContext, position: Position) -> bool:
        """
        Overwrite the editable fields of a position.

        Returns:
            True if a row was updated, False if not found for the user.
        """
        now = datetime.now()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE positions
                SET account = ?, ticker = ?, strike_price = ?, stock_price = ?,
                    option_ticker = ?, quantity = ?, open_date = ?,
                    expiration_date = ?, premium_per_contract = ?, fees = ?,
                    current_option_price = ?, close_price = COALESCE(?, close_price),
                    updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (
                    position.account,
                    position.ticker.upper(),
                    _dec(position.strike_price),
                    _dec(position.stock_price),
                    position.option_ticker,
                    position.quantity,
                    position.open_date.isoformat(),
                    position.expiration_date.isoformat(),
                    _dec(position.premium_per_contract),
                    _dec(position.fees),
                    _dec(position.current_option_price),
                    _dec(position.close_price),
                    now.isoformat(),
                    position.id,
                    user.user_id,
                ),
            )
            updated = cursor.rowcount > 0
        if updated:
            position.updated_at = now
            logger.debug(f"Updated position #{position.id}")
        return updated

    def close(
        self,
        user: UserContext,
        position_id: int,
        close_price: Decimal,
        closed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Mark an open position closed.

        Only rows still Open are touched, so a position closes at most once.

        Returns:
            True if the position was closed, False otherwise.
        """
        closed_at = closed_at or datetime.now()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE positions
                SET status = ?, close_price = ?, closed_at = ?, updated_at = ?
                WHERE id = ? AND user_id = ? AND status = ?
                """,
                (
                    PositionStatus.CLOSED.value,
                    _dec(close_price),
                    closed_at.isoformat(),
                    closed_at.isoformat(),
                    position_id,
                    user.user_id,
                    PositionStatus.OPEN.value,
                ),
            )
            closed = cursor.rowcount > 0
        if closed:
            logger.info(f"Closed position #{position_id} at ${close_price}")
        return closed

    def delete(self, user: UserContext, position_id: int) -> bool:
        """
        Permanently delete a position.

        Returns:
            True if deleted, False if not found for the user.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM positions WHERE id = ? AND user_id = ?",
                (position_id, user.user_id),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted position #{position_id}")
        return deleted

    def count_by_status(self, user: UserContext) -> dict[str, int]:
        """Position counts for the user keyed by status value, plus 'total'."""
        counts = {status.value: 0 for status in PositionStatus}
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS count FROM positions "
                "WHERE user_id = ? GROUP BY status",
                (user.user_id,),
            ).fetchall()
        for row in rows:
            counts[row["status"]] = row["count"]
        counts["total"] = sum(counts.values())
        return counts

    def _row_to_position(self, row: sqlite3.Row) -> Position:
        """Convert a database row to a Position."""
        return Position(
            id=row["id"],
            account=row["account"],
            ticker=row["ticker"],
            strike_price=Decimal(row["strike_price"]),
            stock_price=Decimal(row["stock_price"]),
            quantity=row["quantity"],
            open_date=date.fromisoformat(row["open_date"]),
            expiration_date=date.fromisoformat(row["expiration_date"]),
            premium_per_contract=Decimal(row["premium_per_contract"]),
            fees=Decimal(row["fees"]),
            current_option_price=Decimal(row["current_option_price"]),
            option_ticker=row["option_ticker"],
            status=PositionStatus(row["status"]),
            close_price=(
                Decimal(row["close_price"]) if row["close_price"] is not None else None
            ),
            closed_at=(
                datetime.fromisoformat(row["closed_at"]) if row["closed_at"] else None
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
