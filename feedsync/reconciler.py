"""Feed-to-catalog reconciliation.

One run for one supplier:
1. Fetch and parse the feed (failures here abort the run)
2. Update known models, insert unknown ones (failures are counted per record)
3. Deactivate catalog entries whose models left the feed
4. Report counts and a bounded list of error messages
"""

import logging
from typing import List, Optional, Sequence

from feedsync.catalog import CatalogReader, CatalogWriter
from feedsync.config import MAX_REPORTED_ERRORS
from feedsync.db import CatalogStore
from feedsync.errors import PartialRecordError
from feedsync.logging_config import get_logger, log_sync_event
from feedsync.models import NormalizedProduct, SupplierConfig, SyncReport
from feedsync.parsers import FeedParser, create_parser

__all__ = ["Reconciler", "sync_supplier"]

logger = get_logger("reconciler")

DEACTIVATION_FAILED_MESSAGE = "Failed to disable products not in XML feed"


class Reconciler:
    """Applies a feed snapshot to one supplier's catalog partition."""

    def __init__(
        self,
        reader: CatalogReader,
        writer: CatalogWriter,
        max_reported_errors: int = MAX_REPORTED_ERRORS,
    ):
        self.reader = reader
        self.writer = writer
        self.max_reported_errors = max_reported_errors

    def sync(self, supplier: SupplierConfig, parser: FeedParser) -> SyncReport:
        """Fetch the supplier's feed and reconcile it.

        Raises:
            FetchError, XmlValidationError, ParseError: The feed is unusable
        """
        log_sync_event("sync_start", {
            "message": f"Syncing {supplier.name} from {supplier.xml_url}",
            "supplier": supplier.id,
            "supplier_id": supplier.supplier_id,
            "parser_type": parser.parser_type,
        })
        products = parser.fetch_and_parse_xml(supplier.xml_url)
        return self.reconcile(products, supplier)

    def reconcile(self, products: Sequence[NormalizedProduct], supplier: SupplierConfig) -> SyncReport:
        """Apply already-parsed feed records to the catalog, in feed order."""
        report = SyncReport(total_products=len(products), supplier=supplier.name)
        errors: List[str] = []
        present_models = {product.model for product in products}

        for i, product in enumerate(products, start=1):
            try:
                failure = self._apply(product, supplier, report)
            except Exception as e:
                logger.exception(f"[{i}/{len(products)}] Error processing {product.model}")
                failure = PartialRecordError(product.model, "process", cause=e)

            if failure is not None:
                report.error_count += 1
                errors.append(str(failure))
                log_sync_event("record_error", {
                    "message": str(failure),
                    "supplier": supplier.id,
                    "model": failure.model,
                    "action": failure.action,
                }, level=logging.WARNING)

        try:
            report.disabled_count = self.writer.deactivate_missing(present_models, supplier.supplier_id)
        except Exception:
            logger.exception(f"Error disabling {supplier.name} products not in feed")
            errors.append(DEACTIVATION_FAILED_MESSAGE)

        if len(errors) > self.max_reported_errors:
            logger.info(
                f"{len(errors)} errors recorded, reporting the first {self.max_reported_errors}"
            )
        report.errors = errors[:self.max_reported_errors]

        log_sync_event("sync_complete", {
            "message": (
                f"{supplier.name}: {report.total_products} products, "
                f"{report.updated_count} updated, {report.inserted_count} inserted, "
                f"{report.disabled_count} disabled, {report.error_count} errors"
            ),
            "supplier": supplier.id,
            **report.to_dict(),
        })
        return report

    def _apply(
        self,
        product: NormalizedProduct,
        supplier: SupplierConfig,
        report: SyncReport,
    ) -> Optional[PartialRecordError]:
        """Update or insert one record; return the failure, if any."""
        entry = self.reader.find_by_model(product.model, supplier.supplier_id)

        if entry is not None:
            if self.writer.update(entry.product_id, product):
                report.updated_count += 1
                return None
            return PartialRecordError(product.model, "update")

        if self.writer.insert(product, supplier) is not None:
            report.inserted_count += 1
            return None
        return PartialRecordError(product.model, "insert")


def sync_supplier(supplier: SupplierConfig, store: CatalogStore) -> SyncReport:
    """Run a full sync for one supplier against an open store."""
    parser = create_parser(supplier.parser_type)
    reconciler = Reconciler(CatalogReader(store), CatalogWriter(store))
    return reconciler.sync(supplier, parser)
