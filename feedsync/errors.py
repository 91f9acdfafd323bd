"""Exception hierarchy for the sync pipeline.

Whole-feed failures (fetch, validation, structure) abort a sync.
Per-record failures are collected as PartialRecordError and counted.
"""

from typing import Optional

__all__ = [
    "FeedSyncError",
    "FetchError",
    "XmlValidationError",
    "ParseError",
    "UnknownSupplier",
    "UnknownParserType",
    "PersistenceError",
    "PartialRecordError",
]


class FeedSyncError(Exception):
    """Base class for all pipeline errors."""


class FetchError(FeedSyncError):
    """The feed could not be downloaded (transport failure or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class XmlValidationError(FeedSyncError):
    """The feed body is not well-formed XML."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class ParseError(FeedSyncError):
    """The feed is valid XML but lacks the expected root structure."""


class UnknownSupplier(FeedSyncError):
    """A supplier identifier does not match any configured supplier."""


class UnknownParserType(FeedSyncError):
    """A parser identifier does not match any known feed variant."""


class PersistenceError(FeedSyncError):
    """A catalog storage operation failed."""


class PartialRecordError(FeedSyncError):
    """Insert or update of a single feed record failed; the batch goes on."""

    def __init__(self, model: str, action: str, cause: Optional[BaseException] = None):
        self.model = model
        self.action = action
        self.cause = cause
        if cause is not None:
            message = f"Error processing {model}: {cause}"
        elif action == "update":
            message = f"Failed to update product {model}"
        else:
            message = f"Failed to insert new product {model}"
        super().__init__(message)
