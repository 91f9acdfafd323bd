"""Configuration and constants for the feed sync pipeline."""

import os
from typing import Dict, List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from feedsync.errors import UnknownSupplier
from feedsync.logging_config import get_logger
from feedsync.models import SupplierConfig

# Load .env from the working directory before any setting below is read
load_dotenv(find_dotenv(usecwd=True))

__all__ = [
    "DB_PATH",
    "HEADERS",
    "REQUEST_TIMEOUT",
    "MAX_REPORTED_ERRORS",
    "EXISTENCE_CHUNK_SIZE",
    "LANGUAGE_ID",
    "SIZE_ATTRIBUTE_ID",
    "DEFAULT_NEW_CATEGORY_ID",
    "UTC_OFFSET_HOURS",
    "COLOR_OPTION_NAME",
    "SUPPLIER_REGISTRY",
    "get_supplier_configs",
    "get_supplier_by_id",
    "get_supplier_by_database_id",
    "resolve_supplier",
]

logger = get_logger("config")

# Storage
DB_PATH = os.getenv("CATALOG_DB_PATH", "data/catalog.db")

# HTTP headers for feed requests; feeds must never be served from a cache
HEADERS = {
    "User-Agent": "feedsync-xml-parser/1.0",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Request timeout (seconds)
REQUEST_TIMEOUT = float(os.getenv("FEED_REQUEST_TIMEOUT", "30"))

# Reporting
MAX_REPORTED_ERRORS = 15

# Batch existence checks are chunked to stay under SQLite's variable limit
EXISTENCE_CHUNK_SIZE = 500

# Catalog storage constants
LANGUAGE_ID = 2
SIZE_ATTRIBUTE_ID = 17
DEFAULT_NEW_CATEGORY_ID = 217

# Catalog timestamps are stored as local shop time
UTC_OFFSET_HOURS = float(os.getenv("CATALOG_UTC_OFFSET_HOURS", "3"))

# Option block label that carries the color values in "adamhome" feeds ("COLOR")
COLOR_OPTION_NAME = "ΧΡΩΜΑ"


# =============================================================================
# Supplier Registry
# =============================================================================
# Each known supplier maps to:
#   - env_prefix: prefix of the environment variables describing it
#   - default_name: display name when <PREFIX>_NAME is unset
#   - default_parser: parser variant when <PREFIX>_PARSER is unset
#
# Required variables: <PREFIX>_SUPPLIER_ID and <PREFIX>_XML_URL.
# Optional: <PREFIX>_NAME, <PREFIX>_PARSER, <PREFIX>_NEW_CATEGORY_ID.

SUPPLIER_REGISTRY: Dict[str, Dict[str, str]] = {
    "adamhome": {
        "env_prefix": "ADAM_HOME",
        "default_name": "Adam Home",
        "default_parser": "adamhome",
    },
    "homeline": {
        "env_prefix": "HOMELINE",
        "default_name": "Homeline",
        "default_parser": "homeline",
    },
}


def _parse_int(value: Optional[str], label: str) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        logger.warning(f"Ignoring {label}: {value!r} is not an integer")
        return None


def get_supplier_configs(environ: Optional[Mapping[str, str]] = None) -> List[SupplierConfig]:
    """Build the list of configured suppliers from the environment.

    Suppliers whose required variables are missing are silently left out.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        SupplierConfig objects in registry order
    """
    env = os.environ if environ is None else environ
    suppliers: List[SupplierConfig] = []

    for key, entry in SUPPLIER_REGISTRY.items():
        prefix = entry["env_prefix"]
        raw_id = env.get(f"{prefix}_SUPPLIER_ID")
        xml_url = env.get(f"{prefix}_XML_URL")
        if not raw_id or not xml_url:
            continue

        supplier_id = _parse_int(raw_id, f"{prefix}_SUPPLIER_ID")
        if supplier_id is None:
            continue

        category_id = _parse_int(env.get(f"{prefix}_NEW_CATEGORY_ID"), f"{prefix}_NEW_CATEGORY_ID")

        suppliers.append(SupplierConfig(
            id=key,
            name=env.get(f"{prefix}_NAME") or entry["default_name"],
            supplier_id=supplier_id,
            xml_url=xml_url,
            parser_type=env.get(f"{prefix}_PARSER") or entry["default_parser"],
            new_product_category_id=(
                category_id if category_id is not None else DEFAULT_NEW_CATEGORY_ID
            ),
        ))

    return suppliers


def get_supplier_by_id(
    supplier_key: str,
    suppliers: Optional[List[SupplierConfig]] = None,
) -> Optional[SupplierConfig]:
    """Find a configured supplier by its string id (e.g. 'homeline')."""
    candidates = get_supplier_configs() if suppliers is None else suppliers
    return next((s for s in candidates if s.id == supplier_key), None)


def get_supplier_by_database_id(
    supplier_id: int,
    suppliers: Optional[List[SupplierConfig]] = None,
) -> Optional[SupplierConfig]:
    """Find a configured supplier by its storage partition key."""
    candidates = get_supplier_configs() if suppliers is None else suppliers
    return next((s for s in candidates if s.supplier_id == supplier_id), None)


def resolve_supplier(
    supplier_key: Optional[str],
    suppliers: Optional[List[SupplierConfig]] = None,
    primary: Optional[str] = None,
) -> SupplierConfig:
    """Pick the supplier a request refers to.

    An explicit key must match a configured supplier. Without one, the
    PRIMARY_SUPPLIER setting is used, or the only configured supplier
    in single-supplier deployments.

    Raises:
        UnknownSupplier: If nothing matches or the choice is ambiguous
    """
    candidates = get_supplier_configs() if suppliers is None else suppliers

    if supplier_key:
        supplier = get_supplier_by_id(supplier_key, candidates)
        if supplier is None:
            raise UnknownSupplier(f"Unknown supplier: {supplier_key}")
        return supplier

    primary = primary if primary is not None else os.getenv("PRIMARY_SUPPLIER")
    if primary:
        supplier = get_supplier_by_id(primary, candidates)
        if supplier is None:
            raise UnknownSupplier(f"Unknown supplier: {primary}")
        return supplier

    if len(candidates) == 1:
        return candidates[0]

    raise UnknownSupplier("Supplier not specified")
