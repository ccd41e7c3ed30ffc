"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and
dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Admin bootstrap:
  bootstrap_admin() is the only way registration creates a user. It is a
  single INSERT ... SELECT ... WHERE NOT EXISTS statement, so two concurrent
  registrations cannot both see an empty table and both insert. The loser
  inserts zero rows and gets ConflictError.

Layer rule: no imports from api/, catalog/, or media/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, exists, func, literal, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.database import make_engine
from core.errors import ConflictError

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
    Column("phone", String(50), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(settings.database_url)
        admin = store.bootstrap_admin(User(name="A", email="a@x.com", phone="1", hashed_password=h))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self.engine.connect() as conn:
            found = conn.execute(select(exists().select_from(_users))).scalar()
        return bool(found)

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def bootstrap_admin(self, user: User) -> User:
        """Create the first user as admin, only if no user exists yet.

        Raises ConflictError if any user already exists, including the case
        where a concurrent request won the race between the caller's
        has_users() check and this insert.
        """
        created_at = _now_iso()
        source = select(
            literal(user.name),
            literal(user.email),
            literal(user.phone),
            literal(user.hashed_password),
            literal(True),
            literal(created_at),
        ).where(~exists().select_from(_users))
        stmt = _users.insert().from_select(
            ["name", "email", "phone", "hashed_password", "is_admin", "created_at"],
            source,
        )
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        if result.rowcount == 0:
            raise ConflictError("Admin already exists")
        created = self.get_by_email(user.email)
        if created is None:  # pragma: no cover - row was just inserted
            raise ConflictError("Admin already exists")
        return created

    def create_user(self, user: User) -> int:
        """Insert a user with the given role and return its assigned ID.

        Not reachable from the HTTP surface, which only bootstraps the admin.
        Raises ConflictError if the email or phone is already taken.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        email=user.email,
                        phone=user.phone,
                        hashed_password=user.hashed_password,
                        is_admin=user.is_admin,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("A user with that email or phone already exists") from exc
        return result.inserted_primary_key[0]

    def delete_user(self, user_id: int) -> bool:
        """Delete a user record. Returns True if deleted, False if not found.

        Not exposed over HTTP; used by maintenance scripts and tests that need
        a still-valid token whose user is gone.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(literal(1)))
        return True

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
        phone=row.phone,
        hashed_password=row.hashed_password,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
    )
