"""Supplier XML feed to product catalog synchronization."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from feedsync.catalog import CatalogReader, CatalogWriter
from feedsync.config import DB_PATH, get_supplier_configs, resolve_supplier
from feedsync.db import CatalogStore
from feedsync.errors import (
    FeedSyncError,
    FetchError,
    ParseError,
    PartialRecordError,
    PersistenceError,
    UnknownParserType,
    UnknownSupplier,
    XmlValidationError,
)
from feedsync.models import (
    CatalogEntry,
    ExistenceStatus,
    NormalizedProduct,
    SupplierConfig,
    SyncReport,
)
from feedsync.parsers import FeedParser, create_parser
from feedsync.reconciler import Reconciler, sync_supplier

__all__ = [
    # Version
    "__version__",
    # Config
    "DB_PATH",
    "get_supplier_configs",
    "resolve_supplier",
    # Models
    "NormalizedProduct",
    "CatalogEntry",
    "SupplierConfig",
    "ExistenceStatus",
    "SyncReport",
    # Errors
    "FeedSyncError",
    "FetchError",
    "XmlValidationError",
    "ParseError",
    "UnknownSupplier",
    "UnknownParserType",
    "PersistenceError",
    "PartialRecordError",
    # Core components
    "CatalogStore",
    "CatalogReader",
    "CatalogWriter",
    "FeedParser",
    "create_parser",
    "Reconciler",
    "sync_supplier",
]
