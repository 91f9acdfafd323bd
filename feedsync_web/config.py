"""Centralized configuration for the feedsync web app."""

import os

# Flask app settings (allow env overrides; default debug off for safety)
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

# Supplier synced when a request names none (multi-supplier deployments)
PRIMARY_SUPPLIER = os.getenv("PRIMARY_SUPPLIER") or None

# Review table paging
REVIEW_PAGE_SIZE = int(os.getenv("REVIEW_PAGE_SIZE", "20"))
MAX_REVIEW_PAGE_SIZE = 100

# Length of the plain-text description shown in review rows
DESCRIPTION_PREVIEW_CHARS = 160
