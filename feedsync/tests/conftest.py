"""Shared fixtures for the feedsync test suite."""

import pytest

from feedsync.catalog import CatalogReader, CatalogWriter
from feedsync.db import CatalogStore
from feedsync.models import SupplierConfig

from .helpers import FakeSession


@pytest.fixture
def store(tmp_path):
    """Open a catalog store on a temporary database."""
    catalog = CatalogStore(str(tmp_path / "catalog.db")).open()
    yield catalog
    catalog.close()


@pytest.fixture
def reader(store):
    return CatalogReader(store)


@pytest.fixture
def writer(store):
    return CatalogWriter(store)


@pytest.fixture
def adam_supplier():
    return SupplierConfig(
        id="adamhome",
        name="Adam Home",
        supplier_id=7,
        xml_url="https://adamhome.example/feed.xml",
        parser_type="adamhome",
    )


@pytest.fixture
def homeline_supplier():
    return SupplierConfig(
        id="homeline",
        name="Homeline",
        supplier_id=9,
        xml_url="https://homeline.example/feed.xml",
        parser_type="homeline",
    )


@pytest.fixture
def feed_session():
    return FakeSession()
