"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Atomicity:
  rotate_refresh_hash() is a single compare-and-swap UPDATE conditioned on the
  hash the caller verified against. If two refreshes race with the same token,
  the first UPDATE changes the row and the second matches zero rows. The
  database's per-row write atomicity is the only lock needed.

  clear_refresh_hash() is conditioned on the hash being set, so logging out
  twice is a no-op rather than an error.

DB path: auth/localauth.db by default (Settings.database_url).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateEmail
from auth.models import User

logger = logging.getLogger("localauth.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("refresh_token_hash", Text),  # NULL = never signed in or logged out
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
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


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.create_user("a@x.com", hasher.hash("pw"))
        store.get_by_email("a@x.com")
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
    # Queries
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query.

        Used by GET /health. Connection errors are reported as False so the
        health endpoint can describe the failure instead of returning 500.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database health check failed")
            return False
        return True

    def create_user(self, email: str, password_hash: str) -> User:
        """Insert a new user and return the stored record.

        Raises DuplicateEmail if the email is already registered. The UNIQUE
        constraint is the source of truth, so two concurrent signups for the
        same email cannot both succeed.
        """
        if not password_hash:
            raise ValueError("password_hash must not be empty")
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(email=email, password_hash=password_hash, created_at=created_at)
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return User(
            id=result.inserted_primary_key[0],
            email=email,
            password_hash=password_hash,
            created_at=created_at,
        )

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Refresh-token hash
    # ------------------------------------------------------------------

    def set_refresh_hash(self, user_id: int, refresh_hash: str | None) -> bool:
        """Unconditionally overwrite the stored refresh hash.

        Used after signup and signin, where a brand new session replaces
        whatever was there. Returns True if the user row exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token_hash=refresh_hash)
            )
            conn.commit()
        return result.rowcount > 0

    def rotate_refresh_hash(self, user_id: int, expected_hash: str, new_hash: str) -> bool:
        """Replace expected_hash with new_hash in one atomic UPDATE.

        Returns False if the stored hash is no longer expected_hash, i.e.
        another refresh or a logout got there first.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token_hash == expected_hash))
                .values(refresh_token_hash=new_hash)
            )
            conn.commit()
        return result.rowcount > 0

    def clear_refresh_hash(self, user_id: int) -> bool:
        """Clear the stored refresh hash if one is set.

        Returns True if a hash was cleared, False if there was none (or the
        user does not exist). Never raises for the already-clear case.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token_hash.is_not(None)))
                .values(refresh_token_hash=None)
            )
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        refresh_token_hash=row.refresh_token_hash,
        created_at=row.created_at,
        last_login=row.last_login,
    )
