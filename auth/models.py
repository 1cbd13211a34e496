"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt hash; the plaintext is never stored and the
    hash never leaves the API layer (UserPublic omits it).

    deleted_at is the soft-delete marker. Stores exclude rows where it is set,
    so a soft-deleted user is indistinguishable from a missing one.
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    updated_at: str | None = None
    deleted_at: str | None = None
