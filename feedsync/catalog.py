"""Catalog reads and writes for supplier partitions."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from feedsync.config import EXISTENCE_CHUNK_SIZE, LANGUAGE_ID, SIZE_ATTRIBUTE_ID
from feedsync.db import CatalogStore, now_local, parse_timestamp
from feedsync.errors import PersistenceError
from feedsync.logging_config import get_logger
from feedsync.models import CatalogEntry, ExistenceStatus, NormalizedProduct, SupplierConfig

__all__ = ["CatalogReader", "CatalogWriter"]

logger = get_logger("catalog")


def _decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class CatalogReader:
    """Read-only queries against the catalog."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def find_by_model(self, model: str, supplier_id: int) -> Optional[CatalogEntry]:
        """Find the catalog entry for a model within one supplier partition.

        If several rows share the same (model, supplier_id), the one with the
        lowest product_id is returned.
        """
        with self.store.connection() as conn:
            row = conn.execute("""
                SELECT p.product_id, p.model, p.supplier_id, p.status, p.image, p.price,
                       p.date_modified,
                       d.name AS title, d.description,
                       (SELECT s.price FROM product_special s
                         WHERE s.product_id = p.product_id
                         ORDER BY s.priority, s.product_special_id LIMIT 1) AS special_price,
                       (SELECT a.text FROM product_attribute a
                         WHERE a.product_id = p.product_id
                           AND a.attribute_id = ? AND a.language_id = ?) AS size_text
                FROM product p
                LEFT JOIN product_description d
                       ON d.product_id = p.product_id AND d.language_id = ?
                WHERE p.model = ? AND p.supplier_id = ?
                ORDER BY p.product_id
                LIMIT 1
            """, (SIZE_ATTRIBUTE_ID, LANGUAGE_ID, LANGUAGE_ID, model, supplier_id)).fetchone()

        if row is None:
            return None

        return CatalogEntry(
            product_id=row["product_id"],
            model=row["model"],
            supplier_id=row["supplier_id"],
            status=row["status"],
            title=row["title"],
            description=row["description"],
            price=_decimal(row["price"]),
            special_price=_decimal(row["special_price"]),
            image=row["image"],
            size_attribute_text=row["size_text"],
            modified_at=parse_timestamp(row["date_modified"]),
        )

    def check_existence(self, models: Iterable[str], supplier_id: int) -> Dict[str, ExistenceStatus]:
        """Existence and active status for many models at once.

        A model counts as active if any of its rows is active.
        """
        unique_models = list(dict.fromkeys(models))
        if not unique_models:
            return {}

        found: Dict[str, bool] = {}
        with self.store.connection() as conn:
            for chunk in _chunks(unique_models, EXISTENCE_CHUNK_SIZE):
                placeholders = ",".join("?" for _ in chunk)
                rows = conn.execute(
                    f"SELECT model, MAX(status) AS status FROM product "
                    f"WHERE supplier_id = ? AND model IN ({placeholders}) GROUP BY model",
                    [supplier_id, *chunk],
                ).fetchall()
                for row in rows:
                    found[row["model"]] = row["status"] == 1

        return {
            model: ExistenceStatus(exists=model in found, is_active=found.get(model, False))
            for model in unique_models
        }

    def get_last_updated_time(self, supplier_id: int) -> Optional[datetime]:
        """Latest modification time among active rows of a supplier, or None."""
        with self.store.connection() as conn:
            row = conn.execute(
                "SELECT MAX(date_modified) AS last_updated FROM product "
                "WHERE status = 1 AND supplier_id = ?",
                (supplier_id,),
            ).fetchone()
        return parse_timestamp(row["last_updated"]) if row else None

    def count_by_status(self, supplier_id: int) -> Dict[str, int]:
        with self.store.connection() as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(status = 1), 0) AS active, "
                "COALESCE(SUM(status = 0), 0) AS inactive "
                "FROM product WHERE supplier_id = ?",
                (supplier_id,),
            ).fetchone()
        return {"active": int(row["active"]), "inactive": int(row["inactive"])}


class CatalogWriter:
    """Inserts, updates and deactivates catalog entries."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def insert(self, record: NormalizedProduct, supplier: SupplierConfig) -> Optional[int]:
        """Create a catalog entry for a newly discovered model.

        All rows (product, description, special price, size attribute and
        category link) are written in a single transaction.

        Returns:
            The new product_id, or None if anything failed and was rolled back
        """
        timestamp = now_local()
        try:
            with self.store.transaction() as conn:
                cursor = conn.execute("""
                    INSERT INTO product (supplier_id, model, mpn, image, price, status,
                                         xml_flag, date_added, date_modified)
                    VALUES (?, ?, ?, ?, ?, 1, 1, ?, ?)
                """, (supplier.supplier_id, record.model, record.model, record.image,
                      str(record.price_with_tax), timestamp, timestamp))
                product_id = cursor.lastrowid

                conn.execute("""
                    INSERT INTO product_description (product_id, language_id, name, meta_title,
                                                     h1_title, description)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (product_id, LANGUAGE_ID, record.title, record.title, record.title,
                      record.description))

                conn.execute("""
                    INSERT INTO product_special (product_id, customer_group_id, price, priority)
                    VALUES (?, 0, ?, 1)
                """, (product_id, str(record.price_without_tax)))

                if record.size and record.size.strip():
                    conn.execute("""
                        INSERT INTO product_attribute (product_id, attribute_id, language_id, text)
                        VALUES (?, ?, ?, ?)
                    """, (product_id, SIZE_ATTRIBUTE_ID, LANGUAGE_ID, record.size))

                conn.execute(
                    "INSERT INTO product_to_category (product_id, category_id) VALUES (?, ?)",
                    (product_id, supplier.new_product_category_id),
                )
        except PersistenceError as e:
            logger.error(f"New product insertion failed for {record.model}: {e}")
            return None

        logger.debug(f"Inserted {record.model} as product {product_id}")
        return product_id

    def update(self, product_id: int, record: NormalizedProduct) -> bool:
        """Overwrite an entry with feed data and force it active.

        This is how a deactivated product is revived when it reappears.

        Returns:
            False if no product row matched product_id
        """
        with self.store.transaction() as conn:
            cursor = conn.execute("""
                UPDATE product
                SET price = ?,
                    image = ?,
                    status = 1,
                    date_modified = ?
                WHERE product_id = ?
            """, (str(record.price_with_tax), record.image, now_local(), product_id))
            if cursor.rowcount == 0:
                return False

            conn.execute("""
                UPDATE product_description
                SET name = ?,
                    meta_title = ?,
                    h1_title = ?,
                    description = ?
                WHERE product_id = ? AND language_id = ?
            """, (record.title, record.title, record.title, record.description,
                  product_id, LANGUAGE_ID))

            conn.execute(
                "UPDATE product_special SET price = ? WHERE product_id = ?",
                (str(record.price_without_tax), product_id),
            )

            size = record.size or ""
            cursor = conn.execute("""
                UPDATE product_attribute
                SET text = ?
                WHERE product_id = ? AND attribute_id = ? AND language_id = ?
            """, (size, product_id, SIZE_ATTRIBUTE_ID, LANGUAGE_ID))
            if cursor.rowcount == 0 and size.strip():
                conn.execute("""
                    INSERT INTO product_attribute (product_id, attribute_id, language_id, text)
                    VALUES (?, ?, ?, ?)
                """, (product_id, SIZE_ATTRIBUTE_ID, LANGUAGE_ID, size))

        return True

    def deactivate_missing(self, present_models: Iterable[str], supplier_id: int) -> int:
        """Set status=0 on active entries whose model is absent from the feed.

        An empty ``present_models`` deactivates every active entry of the supplier.

        Returns:
            Number of rows deactivated
        """
        models = list(dict.fromkeys(present_models))

        with self.store.transaction() as conn:
            if not models:
                cursor = conn.execute(
                    "UPDATE product SET status = 0 WHERE status = 1 AND supplier_id = ?",
                    (supplier_id,),
                )
                return cursor.rowcount

            conn.execute("CREATE TEMP TABLE IF NOT EXISTS feed_models (model TEXT PRIMARY KEY)")
            conn.execute("DELETE FROM feed_models")
            conn.executemany(
                "INSERT OR IGNORE INTO feed_models (model) VALUES (?)",
                [(m,) for m in models],
            )
            cursor = conn.execute("""
                UPDATE product
                SET status = 0
                WHERE status = 1
                  AND supplier_id = ?
                  AND model NOT IN (SELECT model FROM feed_models)
            """, (supplier_id,))
            return cursor.rowcount
