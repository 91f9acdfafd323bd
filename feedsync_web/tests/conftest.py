"""Shared fixtures for the web test suite."""

import pytest

from feedsync.db import CatalogStore
from feedsync.models import SupplierConfig
from feedsync.tests.helpers import ADAM_HOME_FEED, ADAM_URL, HOMELINE_FEED, HOMELINE_URL, FakeSession


@pytest.fixture
def store(tmp_path):
    catalog = CatalogStore(str(tmp_path / "catalog.db")).open()
    yield catalog
    catalog.close()


@pytest.fixture
def suppliers():
    return [
        SupplierConfig(id="adamhome", name="Adam Home", supplier_id=7,
                       xml_url=ADAM_URL, parser_type="adamhome"),
        SupplierConfig(id="homeline", name="Homeline", supplier_id=9,
                       xml_url=HOMELINE_URL, parser_type="homeline"),
    ]


@pytest.fixture
def feed_session():
    """Fake session serving both sample feeds."""
    session = FakeSession()
    session.set_feed(ADAM_URL, ADAM_HOME_FEED)
    session.set_feed(HOMELINE_URL, HOMELINE_FEED)
    return session


@pytest.fixture
def app(store, suppliers, feed_session):
    """Flask app wired to a temporary catalog and fake feeds."""
    from feedsync_web.app import create_app

    flask_app = create_app(store=store, suppliers=suppliers, feed_session=feed_session)
    flask_app.config["TESTING"] = True
    flask_app.config["PRIMARY_SUPPLIER"] = None
    return flask_app


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client
