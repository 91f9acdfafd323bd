"""Review table for a supplier feed.

Joins the current feed with catalog existence so an operator can see what a
sync would do before triggering it. Labels are derived on read only:

- new:          model absent from the catalog (a sync would insert it)
- needs_update: present but inactive (a sync would revive it)
- up_to_date:   present and active
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from bs4 import BeautifulSoup

from feedsync.catalog import CatalogReader
from feedsync.errors import PersistenceError
from feedsync.logging_config import get_logger
from feedsync.models import ExistenceStatus, NormalizedProduct, SupplierConfig
from feedsync.parsers import FeedParser

from .config import DESCRIPTION_PREVIEW_CHARS

__all__ = [
    "STATUS_ORDER",
    "classify",
    "description_preview",
    "load_snapshot",
    "build_review_table",
    "filter_review_table",
    "paginate",
    "status_counts",
    "table_to_rows",
]

logger = get_logger("review")

STATUS_ORDER = {"new": 0, "needs_update": 1, "up_to_date": 2}

COLUMNS = [
    "title", "description", "descriptionPreview", "model", "image", "colors", "size",
    "stock", "priceWithTax", "priceWithoutTax", "category", "link",
    "existsInDatabase", "isActive", "isNew", "status", "feedPosition",
]


def classify(status: Optional[ExistenceStatus]) -> str:
    if status is None or not status.exists:
        return "new"
    return "up_to_date" if status.is_active else "needs_update"


def description_preview(html: str, limit: int = DESCRIPTION_PREVIEW_CHARS) -> str:
    """Plain-text excerpt of an HTML description."""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "…"


def load_snapshot(
    supplier: SupplierConfig,
    parser: FeedParser,
    reader: CatalogReader,
) -> Tuple[List[NormalizedProduct], Optional[datetime]]:
    """Fetch the feed and the catalog's last update time concurrently.

    Feed errors propagate. A failing timestamp query only costs the timestamp.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        feed_future = pool.submit(parser.fetch_and_parse_xml, supplier.xml_url)
        updated_future = pool.submit(reader.get_last_updated_time, supplier.supplier_id)

        products = feed_future.result()
        try:
            last_updated = updated_future.result()
        except PersistenceError as e:
            logger.warning(f"Could not read last update time for {supplier.name}: {e}")
            last_updated = None

    return products, last_updated


def build_review_table(
    products: List[NormalizedProduct],
    existence: Dict[str, ExistenceStatus],
) -> pd.DataFrame:
    """One row per feed record, sorted new -> needs_update -> up_to_date.

    Feed order is kept within each label.
    """
    records = []
    for position, product in enumerate(products):
        status = existence.get(product.model)
        label = classify(status)
        row = product.to_dict()
        row.update({
            "descriptionPreview": description_preview(product.description),
            "existsInDatabase": bool(status and status.exists),
            "isActive": bool(status and status.is_active),
            "isNew": label == "new",
            "status": label,
            "feedPosition": position,
        })
        records.append(row)

    df = pd.DataFrame.from_records(records, columns=COLUMNS)
    if df.empty:
        return df

    df["_rank"] = df["status"].map(STATUS_ORDER)
    df = df.sort_values(["_rank", "feedPosition"], kind="mergesort")
    return df.drop(columns="_rank").reset_index(drop=True)


def filter_review_table(df: pd.DataFrame, query: Optional[str]) -> pd.DataFrame:
    """Case-insensitive substring match on title or model."""
    if df.empty or not query or not query.strip():
        return df
    needle = query.strip().lower()
    mask = (
        df["title"].str.lower().str.contains(needle, regex=False)
        | df["model"].str.lower().str.contains(needle, regex=False)
    )
    return df[mask].reset_index(drop=True)


def paginate(df: pd.DataFrame, page: int, page_size: int) -> Tuple[pd.DataFrame, int]:
    """Slice one page (1-based). Returns (page_df, page_count)."""
    page_size = max(1, page_size)
    page_count = max(1, -(-len(df) // page_size))
    page = min(max(1, page), page_count)
    start = (page - 1) * page_size
    return df.iloc[start:start + page_size], page_count


def status_counts(df: pd.DataFrame) -> Dict[str, int]:
    counts = {label: 0 for label in STATUS_ORDER}
    if not df.empty:
        for label, count in df["status"].value_counts().items():
            counts[str(label)] = int(count)
    return counts


def table_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert rows to JSON-safe dicts (numpy scalars become Python values)."""
    rows = []
    for record in df.to_dict(orient="records"):
        row = dict(record)
        for key in ("priceWithTax", "priceWithoutTax"):
            row[key] = float(row[key])
        for key in ("existsInDatabase", "isActive", "isNew"):
            row[key] = bool(row[key])
        row["feedPosition"] = int(row["feedPosition"])
        rows.append(row)
    return rows
