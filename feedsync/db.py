"""SQLite storage client and catalog schema.

The store is constructed explicitly and handed to the catalog reader and
writer. Lifecycle: ``open()`` once at process start (creates the schema),
``close()`` at shutdown. Every statement or transaction borrows its own
connection, which is always released on exit.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, Optional

from feedsync.config import DB_PATH, UTC_OFFSET_HOURS
from feedsync.errors import PersistenceError
from feedsync.logging_config import get_logger

__all__ = [
    "CatalogStore",
    "now_local",
    "parse_timestamp",
]

logger = get_logger("db")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def now_local() -> str:
    """Current shop-local time as stored in date_added/date_modified."""
    tz = timezone(timedelta(hours=UTC_OFFSET_HOURS))
    return datetime.now(tz).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Unparseable catalog timestamp: {value!r}")
        return None


class CatalogStore:
    """Storage client for the product catalog.

    Usage:
        store = CatalogStore("data/catalog.db").open()
        with store.transaction() as conn:
            conn.execute(...)
        store.close()
    """

    def __init__(self, db_path: str = DB_PATH, timeout: float = 10.0):
        self.db_path = str(db_path)
        self.timeout = timeout
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "CatalogStore":
        """Prepare the database file and schema. Returns self for chaining."""
        if self._open:
            return self
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._open = True
        try:
            self.init_schema()
        except PersistenceError:
            self._open = False
            raise
        logger.debug(f"Catalog store opened: {self.db_path}")
        return self

    def close(self) -> None:
        if self._open:
            self._open = False
            logger.debug(f"Catalog store closed: {self.db_path}")

    def __enter__(self) -> "CatalogStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Borrow a connection in autocommit mode; closed on every exit path."""
        if not self._open:
            raise PersistenceError("Catalog store is not open")

        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot connect to catalog database: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run several statements atomically: commit on success, roll back on any error."""
        with self.connection() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def init_schema(self) -> None:
        """Create catalog tables if they do not exist."""
        with self.transaction() as conn:
            cursor = conn.cursor()

            # Core product table, partitioned by supplier
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product (
                    product_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    supplier_id INTEGER NOT NULL,
                    model TEXT NOT NULL,
                    mpn TEXT,
                    image TEXT,
                    price DECIMAL(15,4) NOT NULL DEFAULT 0,
                    status INTEGER NOT NULL DEFAULT 1,
                    xml_flag INTEGER NOT NULL DEFAULT 1,
                    date_added TIMESTAMP,
                    date_modified TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product_description (
                    product_id INTEGER NOT NULL,
                    language_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    meta_title TEXT,
                    h1_title TEXT,
                    description TEXT,
                    PRIMARY KEY (product_id, language_id),
                    FOREIGN KEY (product_id) REFERENCES product(product_id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product_special (
                    product_special_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id INTEGER NOT NULL,
                    customer_group_id INTEGER NOT NULL DEFAULT 0,
                    price DECIMAL(15,4) NOT NULL DEFAULT 0,
                    priority INTEGER NOT NULL DEFAULT 1,
                    FOREIGN KEY (product_id) REFERENCES product(product_id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product_attribute (
                    product_id INTEGER NOT NULL,
                    attribute_id INTEGER NOT NULL,
                    language_id INTEGER NOT NULL,
                    text TEXT NOT NULL DEFAULT '',
                    PRIMARY KEY (product_id, attribute_id, language_id),
                    FOREIGN KEY (product_id) REFERENCES product(product_id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product_to_category (
                    product_id INTEGER NOT NULL,
                    category_id INTEGER NOT NULL,
                    PRIMARY KEY (product_id, category_id),
                    FOREIGN KEY (product_id) REFERENCES product(product_id) ON DELETE CASCADE
                )
            """)

            # (supplier_id, model) is the lookup key but is deliberately not UNIQUE:
            # historical duplicates may exist and the lowest product_id wins.
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_product_supplier_model ON product(supplier_id, model)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_product_supplier_status ON product(supplier_id, status)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_product_special_product_id ON product_special(product_id)"
            )
