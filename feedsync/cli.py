"""Command-line interface for supplier feed syncs."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from feedsync.catalog import CatalogReader
from feedsync.config import DB_PATH, get_supplier_configs, resolve_supplier
from feedsync.db import CatalogStore
from feedsync.errors import FeedSyncError
from feedsync.logging_config import get_logger, setup_logging
from feedsync.models import SupplierConfig, SyncReport
from feedsync.reconciler import sync_supplier

__all__ = ["main", "parse_args", "show_stats", "print_report"]

logger = get_logger("cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync supplier XML feeds into the product catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync the primary (or only) configured supplier
  feedsync

  # Sync one supplier by id
  feedsync --supplier homeline

  # Sync every configured supplier, JSON output
  feedsync --all --json

  # Show configured suppliers / catalog statistics
  feedsync --list-suppliers
  feedsync --stats
        """,
    )

    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--supplier",
        metavar="ID",
        help="Supplier id to sync (default: PRIMARY_SUPPLIER or the only configured one)",
    )
    target.add_argument(
        "--all",
        action="store_true",
        help="Sync every configured supplier in turn",
    )

    parser.add_argument(
        "--db",
        default=DB_PATH,
        help=f"SQLite catalog path (default: {DB_PATH})",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print sync results as JSON",
    )
    parser.add_argument(
        "--list-suppliers",
        action="store_true",
        help="List configured suppliers and exit",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show per-supplier catalog statistics and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def show_stats(store: CatalogStore, suppliers: List[SupplierConfig]) -> None:
    """Display active/inactive counts and last update per supplier."""
    reader = CatalogReader(store)

    print(f"\n{'='*50}")
    print(f"Database: {store.db_path}")
    print(f"{'='*50}")

    for supplier in suppliers:
        counts = reader.count_by_status(supplier.supplier_id)
        last_updated = reader.get_last_updated_time(supplier.supplier_id)
        print(f"\n{supplier.name} (supplier_id={supplier.supplier_id})")
        print(f"  Active:       {counts['active']}")
        print(f"  Inactive:     {counts['inactive']}")
        print(f"  Last updated: {last_updated or 'never'}")

    print()


def print_report(report: SyncReport) -> None:
    print(f"\n{'='*50}")
    print(f"SYNC COMPLETE: {report.supplier}")
    print(f"{'='*50}")
    print(f"Products in feed: {report.total_products}")
    print(f"Updated:          {report.updated_count}")
    print(f"Inserted:         {report.inserted_count}")
    print(f"Disabled:         {report.disabled_count}")
    print(f"Errors:           {report.error_count}")
    for message in report.errors:
        print(f"  - {message}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    suppliers = get_supplier_configs()

    if args.list_suppliers:
        if not suppliers:
            print("No suppliers configured. Set <PREFIX>_SUPPLIER_ID and <PREFIX>_XML_URL.")
        for s in suppliers:
            print(f"  {s.id}: {s.name} (supplier_id={s.supplier_id}, parser={s.parser_type})")
            print(f"    {s.xml_url}")
        return 0

    with CatalogStore(args.db) as store:
        if args.stats:
            show_stats(store, suppliers)
            return 0

        try:
            targets = suppliers if args.all else [resolve_supplier(args.supplier, suppliers)]
        except FeedSyncError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

        exit_code = 0
        results = []
        for supplier in targets:
            try:
                report = sync_supplier(supplier, store)
            except FeedSyncError as e:
                logger.error(f"Sync failed for {supplier.name}: {e}")
                results.append({"success": False, "supplier": supplier.name, "message": str(e)})
                exit_code = 1
                continue

            results.append({"success": True, "supplier": supplier.name, "stats": report.to_dict()})
            if not args.json:
                print_report(report)

        if args.json:
            print(json.dumps(results, indent=2, ensure_ascii=False))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
