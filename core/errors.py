"""
core/errors.py -- Record store error taxonomy.

Stores translate driver-level failures (sqlalchemy.exc.*) into these types so
route handlers and the app-level exception handlers never depend on the
database driver. api/main.py maps them to HTTP statuses:

  DuplicateKeyError   -> 409
  RecordNotFoundError -> 404
  StoreError          -> 500

Layer rule: core/ is the kernel. No imports from api/, auth/, or tasks/.
"""

from __future__ import annotations


class StoreError(Exception):
    """Generic persistence failure."""


class DuplicateKeyError(StoreError):
    """A unique constraint rejected the write.

    field names the colliding column ("username", "email") when the store can
    tell which one it was, otherwise None.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class RecordNotFoundError(StoreError):
    """The requested row does not exist, is soft-deleted, or is not owned by the caller."""
