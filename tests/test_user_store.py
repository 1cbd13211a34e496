"""Unit tests for auth/store.py and auth/passwords.py.

Covers:
- create_user() assigns ids and timestamps
- duplicate username / email raise DuplicateKeyError naming the field
- soft delete hides the user from every lookup but keeps its username taken
- authenticate_user() accepts the right password only
"""

import pytest

from auth.models import User
from auth.passwords import authenticate_user, hash_password, verify_password
from auth.store import UserStore
from core.errors import DuplicateKeyError, RecordNotFoundError


@pytest.fixture
def store():
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


def _user(username="alice", email="alice@example.com", password="s3cret!") -> User:
    return User(username=username, email=email, hashed_password=hash_password(password))


def test_create_and_fetch(store):
    uid = store.create_user(_user())
    user = store.get_by_id(uid)
    assert user is not None
    assert user.username == "alice"
    assert user.email == "alice@example.com"
    assert user.created_at
    assert user.deleted_at is None
    assert store.get_by_email("alice@example.com").id == uid


def test_password_is_stored_hashed(store):
    uid = store.create_user(_user(password="s3cret!"))
    stored = store.get_by_id(uid).hashed_password
    assert stored != "s3cret!"
    assert verify_password("s3cret!", stored)


def test_duplicate_username(store):
    store.create_user(_user())
    with pytest.raises(DuplicateKeyError) as exc_info:
        store.create_user(_user(email="other@example.com"))
    assert exc_info.value.field == "username"
    assert str(exc_info.value) == "Username already exists"


def test_duplicate_email(store):
    store.create_user(_user())
    with pytest.raises(DuplicateKeyError) as exc_info:
        store.create_user(_user(username="alice2"))
    assert exc_info.value.field == "email"
    assert str(exc_info.value) == "Email already exists"


def test_soft_delete_hides_user(store):
    uid = store.create_user(_user())
    store.delete_user(uid)
    assert store.get_by_id(uid) is None
    assert store.get_by_email("alice@example.com") is None
    with pytest.raises(RecordNotFoundError):
        store.delete_user(uid)


def test_soft_deleted_username_stays_taken(store):
    uid = store.create_user(_user())
    store.delete_user(uid)
    with pytest.raises(DuplicateKeyError):
        store.create_user(_user(email="fresh@example.com"))


def test_ping(store):
    assert store.ping() is True


# ---------------------------------------------------------------------------
# authenticate_user
# ---------------------------------------------------------------------------


def test_authenticate_user_success(store):
    uid = store.create_user(_user(password="s3cret!"))
    user = authenticate_user(store, "alice@example.com", "s3cret!")
    assert user is not None
    assert user.id == uid


def test_authenticate_user_wrong_password(store):
    store.create_user(_user(password="s3cret!"))
    assert authenticate_user(store, "alice@example.com", "nope") is None


def test_authenticate_user_unknown_email(store):
    assert authenticate_user(store, "ghost@example.com", "whatever") is None


def test_verify_password_with_malformed_hash():
    assert verify_password("x", "not-a-bcrypt-hash") is False
