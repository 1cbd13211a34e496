"""
auth/passwords.py -- Password hashing and credential verification.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). Bcrypt is the right
       choice for low-entropy secrets because its cost factor makes
       brute-force expensive. A fresh salt is generated per hash.

  Timing equalization: authenticate_user() always runs one bcrypt check,
       against _DUMMY_HASH when the email is unknown, so response time does
       not reveal whether an account exists.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import bcrypt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps password
    length (Pydantic max_length) so inputs stay below that limit.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash counts as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so the first failed login costs the same as later ones.
_DUMMY_HASH: str = hash_password("taskboard_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair. Returns the User on success, None otherwise.

    Unknown email and wrong password both cost one bcrypt comparison and both
    return None, so callers answer with the same generic message.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
