"""Data models for feed records, catalog rows and sync results."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

__all__ = [
    "NormalizedProduct",
    "CatalogEntry",
    "SupplierConfig",
    "ExistenceStatus",
    "SyncReport",
]


@dataclass(frozen=True)
class NormalizedProduct:
    """A single in-stock product parsed from a supplier feed.

    Every parser variant produces this same shape, regardless of the
    tag vocabulary used by the vendor.
    """

    title: str
    description: str
    model: str
    image: str
    colors: str
    size: str
    stock: str
    price_with_tax: Decimal
    price_without_tax: Decimal
    category: str
    link: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "model": self.model,
            "image": self.image,
            "colors": self.colors,
            "size": self.size,
            "stock": self.stock,
            "priceWithTax": float(self.price_with_tax),
            "priceWithoutTax": float(self.price_without_tax),
            "category": self.category,
            "link": self.link,
        }


@dataclass
class CatalogEntry:
    """A catalog row addressed by (model, supplier_id)."""

    product_id: int
    model: str
    supplier_id: int
    status: int
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    special_price: Optional[Decimal] = None
    image: Optional[str] = None
    size_attribute_text: Optional[str] = None
    modified_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class SupplierConfig:
    """Static configuration for one vendor feed."""

    id: str
    name: str
    supplier_id: int
    xml_url: str
    parser_type: str
    # Category that newly discovered products are filed under until reviewed
    new_product_category_id: int = 217

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "supplierId": self.supplier_id,
            "parserType": self.parser_type,
        }


@dataclass(frozen=True)
class ExistenceStatus:
    exists: bool
    is_active: bool


@dataclass
class SyncReport:
    """Outcome of one sync run.

    Counters always reflect true totals; ``errors`` is a bounded preview.
    """

    total_products: int = 0
    updated_count: int = 0
    inserted_count: int = 0
    disabled_count: int = 0
    error_count: int = 0
    errors: List[str] = field(default_factory=list)
    supplier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the ``stats`` payload returned by the sync endpoint."""
        return {
            "totalProducts": self.total_products,
            "updatedCount": self.updated_count,
            "insertedCount": self.inserted_count,
            "disabledCount": self.disabled_count,
            "errorCount": self.error_count,
            "errors": list(self.errors),
        }
