from __future__ import annotations

from typing import Optional


class StoreError(Exception):
    """Base class for document store failures.

    Every subclass carries a short machine tag in ``code`` so callers can
    branch on the kind of failure without parsing messages.
    """

    code = "store_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)


class NotFound(StoreError):
    code = "not_found"


class DuplicateEntry(StoreError):
    code = "duplicate_entry"


class Conflict(StoreError):
    """The backing file changed between our load and our save."""

    code = "conflict"


class IOFailure(StoreError):
    code = "io_failure"


class CorruptData(StoreError):
    code = "corrupt_data"
