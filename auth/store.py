"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as tasks/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Soft delete:
  delete_user() stamps deleted_at instead of removing the row. Every lookup
  filters on deleted_at IS NULL, so a soft-deleted user cannot log in and any
  session still bound to it is rejected by the request gate ("user not found").
  UNIQUE(username) and UNIQUE(email) still cover soft-deleted rows.

Errors:
  IntegrityError from a unique constraint is re-raised as DuplicateKeyError so
  callers never import sqlalchemy.exc. Other driver errors surface as StoreError.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.errors import DuplicateKeyError, RecordNotFoundError, StoreError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32), index=True),  # NULL = live row
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _live():
    return _users.c.deleted_at.is_(None)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///taskboard.db")
        uid = store.create_user(User(username="alice", email="alice@example.com", hashed_password=hash_password("s3cret")))
        user = store.get_by_email("alice@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Checks username then email first so the caller learns which field
        collided. The IntegrityError branch still covers the race where two
        concurrent registrations pass the checks before either inserts.
        """
        if self._exists(_users.c.username == user.username):
            raise DuplicateKeyError("Username already exists", field="username")
        if self._exists(_users.c.email == user.email):
            raise DuplicateKeyError("Email already exists", field="email")

        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateKeyError("Username or email already exists") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to create user: {exc}") from exc

    def delete_user(self, user_id: int) -> None:
        """Soft-delete a user. Raises RecordNotFoundError if already gone."""
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.update().where((_users.c.id == user_id) & _live()).values(deleted_at=now, updated_at=now)
                )
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to delete user: {exc}") from exc
        if result.rowcount == 0:
            raise RecordNotFoundError("user not found")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a live user by primary key. Returns None if not found."""
        return self._fetch_one(_users.c.id == user_id)

    def get_by_email(self, email: str) -> User | None:
        """Look up a live user by exact email. Returns None if not found."""
        return self._fetch_one(_users.c.email == email)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(_users.select().limit(1))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch_one(self, clause) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(clause & _live())).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load user: {exc}") from exc
        return _row_to_user(row) if row is not None else None

    def _exists(self, clause) -> bool:
        # Soft-deleted rows still hold their UNIQUE values.
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(clause).limit(1)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to check user: {exc}") from exc
        return row is not None


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )
