"""Flask app for reviewing supplier feeds and triggering catalog syncs.

The catalog store is opened when the app is created and closed at
interpreter exit. Run locally with:

    python -m feedsync_web.app
"""

import atexit
from pathlib import Path
from typing import List, Optional

import requests  # type: ignore[import-untyped]
from dotenv import load_dotenv
from flask import Flask

# Load environment variables from .env file (explicitly specify path)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from feedsync.config import DB_PATH, get_supplier_configs  # noqa: E402
from feedsync.db import CatalogStore  # noqa: E402
from feedsync.logging_config import get_logger, setup_logging  # noqa: E402
from feedsync.models import SupplierConfig  # noqa: E402

from .api import api  # noqa: E402
from .config import FLASK_DEBUG, FLASK_HOST, FLASK_PORT, PRIMARY_SUPPLIER  # noqa: E402

__all__ = ["create_app"]

logger = get_logger("app")


def create_app(
    store: Optional[CatalogStore] = None,
    suppliers: Optional[List[SupplierConfig]] = None,
    feed_session: Optional[requests.Session] = None,
) -> Flask:
    """Build the Flask app.

    Args:
        store: Catalog store to use; one is opened on DB_PATH when omitted
        suppliers: Supplier configs; read from the environment when omitted
        feed_session: Session for feed downloads, shared by all requests.
            requests sessions are not guaranteed thread-safe, so the default
            (None) downloads each feed with a plain requests.get
    """
    app = Flask(__name__)

    if store is None:
        store = CatalogStore(DB_PATH)
        atexit.register(store.close)
    store.open()

    app.config["CATALOG_STORE"] = store
    app.config["SUPPLIERS"] = get_supplier_configs() if suppliers is None else suppliers
    app.config["PRIMARY_SUPPLIER"] = PRIMARY_SUPPLIER
    app.config["FEED_SESSION"] = feed_session

    app.register_blueprint(api)

    logger.info(
        f"Serving {len(app.config['SUPPLIERS'])} supplier(s) from catalog {store.db_path}"
    )
    return app


if __name__ == "__main__":
    setup_logging()
    create_app().run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
