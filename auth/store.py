"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper (same as events/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Only bcrypt hashes are persisted; plaintext passwords never reach this layer.

  UNIQUE(email) is enforced by the schema. create_user() translates the
  resulting IntegrityError into DuplicateEmailError, so two concurrent
  registrations with one email cannot both succeed.

Layer rule: no imports from api/ or events/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.db import DEFAULT_DB_URL, create_db_engine
from core.errors import DuplicateEmailError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        store.create_user(User(name="Ana", email="ana@x.com", hashed_password=hash_password("secret")))
        user = store.get_by_email("ana@x.com")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL, connect_timeout: int = 3) -> None:
        self.engine: Engine = create_db_engine(db_url, connect_timeout)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateEmailError if a record with the same email exists.
        Equality is exact: "Ana@x.com" and "ana@x.com" are different emails.
        """
        with self.engine.connect() as conn:
            try:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        is_admin=user.is_admin,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
            except IntegrityError as exc:
                conn.rollback()
                raise DuplicateEmailError() from exc
            return result.inserted_primary_key[0]

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

    def get_names(self, user_ids: set[int]) -> dict[int, str]:
        """Return {user_id: name} for the given ids in one query.

        Ids with no matching record are simply absent from the result. Used
        when rendering event lists so the owner name costs one query, not N.
        """
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(select(_users.c.id, _users.c.name).where(_users.c.id.in_(user_ids))).fetchall()
        return {row.id: row.name for row in rows}

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Tokens already issued to the user stop working on their next use:
        the auth dependency re-resolves every token against this store.
        Events owned by the user are left in place.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
    )
