import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings
from core.logger import setup_logger
from core.schema import Transaction

logger = setup_logger(__name__)

TRANSACTION_COLUMNS = (
    "id",
    "date",
    "amount",
    "description",
    "category",
    "subcategory",
    "account",
    "type",
    "original_currency",
    "is_verified",
    "confidence",
)


class Database:
    """sqlite-backed transaction store."""

    def __init__(self, db_path: Optional[str] = None):
        self.settings = get_settings()
        self.db_path = db_path or self.settings.database_path

    def get_connection(self) -> sqlite3.Connection:
        """Create a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Initialize database tables."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    date TEXT,
                    amount REAL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT '',
                    subcategory TEXT,
                    account TEXT NOT NULL DEFAULT '',
                    type TEXT,
                    original_currency TEXT,
                    is_verified INTEGER,
                    confidence REAL
                )
            """)
            conn.commit()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise
        finally:
            conn.close()

    @staticmethod
    def _to_row(transaction: Transaction) -> tuple:
        return (
            transaction.id,
            transaction.date.isoformat() if transaction.date else None,
            transaction.amount,
            transaction.description,
            transaction.category,
            transaction.subcategory,
            transaction.account,
            transaction.type,
            transaction.original_currency,
            None if transaction.is_verified is None else int(transaction.is_verified),
            transaction.confidence,
        )

    def add_transactions(self, transactions: Iterable[Union[Transaction, Dict[str, Any]]]) -> int:
        """
        Insert or replace transactions.

        Args:
            transactions: Transaction models or raw dicts

        Returns:
            Number of rows written
        """
        rows = [
            self._to_row(t if isinstance(t, Transaction) else Transaction.model_validate(t))
            for t in transactions
        ]

        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            placeholders = ", ".join("?" for _ in TRANSACTION_COLUMNS)
            cursor.executemany(
                f"INSERT OR REPLACE INTO transactions ({', '.join(TRANSACTION_COLUMNS)}) "
                f"VALUES ({placeholders})",
                rows,
            )
            conn.commit()
            logger.info(f"Stored {len(rows)} transactions")
            return len(rows)
        except Exception as e:
            logger.error(f"Failed to add transactions: {e}")
            raise
        finally:
            conn.close()

    def get_all_transactions(self) -> List[Transaction]:
        """Load every stored transaction, skipping rows that fail validation."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {', '.join(TRANSACTION_COLUMNS)} FROM transactions ORDER BY date, id")
            rows = cursor.fetchall()
        except Exception as e:
            logger.error(f"Failed to get transactions: {e}")
            raise
        finally:
            conn.close()

        transactions = []
        for row in rows:
            record = dict(row)
            if record["is_verified"] is not None:
                record["is_verified"] = bool(record["is_verified"])
            try:
                transactions.append(Transaction.model_validate(record))
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid stored transaction {record.get('id')}: {e}")
        return transactions


# Global DB instance
_db: Optional[Database] = None


def get_db() -> Database:
    global _db
    if _db is None:
        _db = Database()
    return _db


def reset_db() -> None:
    """Reset DB singleton (useful for testing)."""
    global _db
    _db = None
