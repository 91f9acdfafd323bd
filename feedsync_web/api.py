"""API endpoints for supplier feed review and catalog sync.

- POST /update-database  run a sync for one supplier
- GET  /products         review table of the current feed vs the catalog
- GET  /suppliers        configured suppliers
"""

import logging
from typing import Any, List, Optional, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from feedsync.catalog import CatalogReader, CatalogWriter
from feedsync.config import resolve_supplier
from feedsync.db import CatalogStore
from feedsync.errors import FeedSyncError, UnknownParserType, UnknownSupplier
from feedsync.logging_config import get_logger, log_sync_event
from feedsync.models import SupplierConfig
from feedsync.parsers import FeedParser, create_parser
from feedsync.reconciler import Reconciler

from .config import MAX_REVIEW_PAGE_SIZE, REVIEW_PAGE_SIZE
from .review import (
    build_review_table,
    filter_review_table,
    load_snapshot,
    paginate,
    status_counts,
    table_to_rows,
)

__all__ = ["api"]

logger = get_logger("api")

api = Blueprint("api", __name__)


def _store() -> CatalogStore:
    return current_app.config["CATALOG_STORE"]


def _suppliers() -> List[SupplierConfig]:
    return current_app.config["SUPPLIERS"]


def _parser_for(supplier: SupplierConfig) -> FeedParser:
    """A fresh parser per request, so configuration changes apply immediately."""
    return create_parser(supplier.parser_type, session=current_app.config.get("FEED_SESSION"))


def _error(status: int, error: str, message: Optional[str] = None) -> Tuple[Response, int]:
    return jsonify({"success": False, "error": error, "message": message or error}), status


@api.route("/update-database", methods=["POST"])
def update_database() -> Tuple[Response, int]:
    """Sync the catalog with one supplier's current feed.

    Request JSON (optional): {"supplier": "<supplier id>"}

    Returns:
        200 with sync stats, 400 for bad input, 500 when the sync cannot run
    """
    body: Any = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return _error(400, "Invalid request body", "Expected a JSON object")

    supplier_key = body.get("supplier")
    if supplier_key is not None and not isinstance(supplier_key, str):
        return _error(400, "supplier must be a string")

    try:
        supplier = resolve_supplier(
            supplier_key,
            _suppliers(),
            primary=current_app.config.get("PRIMARY_SUPPLIER") or "",
        )
    except UnknownSupplier as e:
        return _error(400, str(e))

    try:
        parser = _parser_for(supplier)
        reconciler = Reconciler(CatalogReader(_store()), CatalogWriter(_store()))
        report = reconciler.sync(supplier, parser)
    except Exception as e:
        logger.exception(f"Database update failed for {supplier.name}")
        log_sync_event("sync_failed", {
            "message": f"Database update failed for {supplier.name}: {e}",
            "supplier": supplier.id,
            "error_type": type(e).__name__,
        }, level=logging.ERROR)
        return _error(500, "Failed to update database", str(e))

    return jsonify({
        "success": True,
        "message": f"Database update completed for {supplier.name}",
        "supplier": supplier.name,
        "stats": report.to_dict(),
    }), 200


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name, type=int)
    return default if value is None else value


@api.route("/products", methods=["GET"])
def list_products() -> Tuple[Response, int]:
    """Review table of the supplier's feed annotated with catalog status.

    Query params: supplier, q (title/model search), page, page_size
    """
    try:
        supplier = resolve_supplier(
            request.args.get("supplier"),
            _suppliers(),
            primary=current_app.config.get("PRIMARY_SUPPLIER") or "",
        )
    except UnknownSupplier as e:
        return _error(400, str(e))

    page = _int_arg("page", 1)
    page_size = min(max(1, _int_arg("page_size", REVIEW_PAGE_SIZE)), MAX_REVIEW_PAGE_SIZE)

    try:
        parser = _parser_for(supplier)
    except UnknownParserType as e:
        logger.error(f"Invalid parser configuration for {supplier.name}: {e}")
        return _error(500, "Invalid supplier configuration", str(e))

    reader = CatalogReader(_store())
    try:
        products, last_updated = load_snapshot(supplier, parser, reader)
        existence = reader.check_existence([p.model for p in products], supplier.supplier_id)
    except FeedSyncError as e:
        logger.error(f"Failed to load review table for {supplier.name}: {e}")
        return _error(502, "Failed to load supplier feed", str(e))

    table = build_review_table(products, existence)
    counts = status_counts(table)
    table = filter_review_table(table, request.args.get("q"))
    page_df, page_count = paginate(table, page, page_size)

    return jsonify({
        "supplier": supplier.name,
        "lastUpdated": last_updated.isoformat() if last_updated else None,
        "total": len(table),
        "page": min(max(1, page), page_count),
        "pageSize": page_size,
        "pageCount": page_count,
        "counts": counts,
        "products": table_to_rows(page_df),
    }), 200


@api.route("/suppliers", methods=["GET"])
def list_suppliers() -> Response:
    return jsonify({"suppliers": [s.to_dict() for s in _suppliers()]})
