"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore and RoleStore are the repositories; _rows_to_principal and
_row_to_role are the mappers. Service and gate code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) and UNIQUE(email) are the final guard against concurrent
  registrations. Both may pass the service-level existence checks before
  either commits; the loser gets sqlalchemy.exc.IntegrityError from save(),
  which the service reports as a duplicate identity [R1].

DB path: ./archilogic.db by default (DATABASE_URL overrides).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    exists,
    func,
    select,
)
from sqlalchemy.engine import Engine

from auth.models import Principal, Role, RoleName

logger = logging.getLogger("archilogic.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("password", String(255), nullable=False),  # bcrypt digest
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("phone_number", String(15)),
    Column("created_at", String(32), nullable=False),
)

_roles = Table(
    "roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(20), nullable=False, unique=True),
)

_user_roles = Table(
    "user_roles",
    _metadata,
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id"), primary_key=True),
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


def create_store_engine(db_url: str) -> Engine:
    """Create an Engine with the schema in place. Shared by UserStore and RoleStore."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class RoleStore:
    """Repository for the fixed role set.

    Usage:
        roles = RoleStore(engine)
        roles.seed_roles()
        role = roles.find_by_role_name(RoleName.ADMIN)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_roles)).scalar() or 0

    def find_by_role_name(self, name: RoleName | str) -> Role | None:
        """Look up a seeded role. Returns None when the role was never seeded."""
        value = name.value if isinstance(name, RoleName) else name
        with self.engine.connect() as conn:
            row = conn.execute(_roles.select().where(_roles.c.name == value)).fetchone()
        return _row_to_role(row) if row is not None else None

    def seed_roles(self) -> int:
        """Insert every RoleName when the roles table is empty.

        Idempotent: a populated table is left alone. Returns the number of
        roles inserted.
        """
        logger.info("Role seeding check running")
        if self.count() > 0:
            logger.info("Roles already exist in the database. No seeding needed.")
            return 0
        logger.info("No roles found in the database. Seeding initial roles...")
        with self.engine.begin() as conn:
            for role in RoleName:
                conn.execute(_roles.insert().values(name=role.value))
                logger.info("Saved role to database: %s", role.value)
        logger.info("Role seeding complete.")
        return len(RoleName)


class UserStore:
    """Repository for Principal records and their role links.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user_id = store.save(principal)
        principal = store.lookup_by_username("johndoe")
        store.close()
    """

    def __init__(self, db_url: str | None = None, engine: Engine | None = None) -> None:
        if engine is None:
            engine = create_store_engine(db_url or "sqlite:///./archilogic.db")
        self.engine: Engine = engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lookup_by_username(self, username: str) -> Principal | None:
        """Load a principal together with its roles in a single query.

        LEFT JOIN so a user row with no role links is still found; roles come
        back in role id order. Returns None if the username does not exist.
        """
        stmt = (
            select(_users, _roles.c.name.label("role_name"))
            .select_from(
                _users.outerjoin(_user_roles, _user_roles.c.user_id == _users.c.id).outerjoin(
                    _roles, _roles.c.id == _user_roles.c.role_id
                )
            )
            .where(_users.c.username == username)
            .order_by(_roles.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return _rows_to_principal(rows) if rows else None

    def exists_by_username(self, username: str) -> bool:
        with self.engine.connect() as conn:
            return bool(conn.execute(select(exists().where(_users.c.username == username))).scalar())

    def exists_by_email(self, email: str) -> bool:
        with self.engine.connect() as conn:
            return bool(conn.execute(select(exists().where(_users.c.email == email))).scalar())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, principal: Principal) -> int:
        """Insert a principal and links to its (already seeded) roles in one transaction.

        Returns the new user id. Raises sqlalchemy.exc.IntegrityError when the
        username or email is already taken [R1]; nothing is written in that
        case because the transaction rolls back. Role names that are not
        seeded are skipped -- the service checks them before calling save().
        """
        with self.engine.begin() as conn:
            role_ids = (
                conn.execute(select(_roles.c.id).where(_roles.c.name.in_(principal.roles)).order_by(_roles.c.id))
                .scalars()
                .all()
            )
            result = conn.execute(
                _users.insert().values(
                    username=principal.username,
                    email=principal.email,
                    password=principal.password,
                    first_name=principal.first_name,
                    last_name=principal.last_name,
                    phone_number=principal.phone_number,
                    created_at=_now_iso(),
                )
            )
            user_id = result.inserted_primary_key[0]
            for role_id in role_ids:
                conn.execute(_user_roles.insert().values(user_id=user_id, role_id=role_id))
        return user_id

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _rows_to_principal(rows) -> Principal:
    # One row per role link; user columns repeat on every row.
    first = rows[0]
    roles = tuple(r.role_name for r in rows if r.role_name is not None)
    return Principal(
        id=first.id,
        username=first.username,
        email=first.email,
        password=first.password,
        first_name=first.first_name,
        last_name=first.last_name,
        phone_number=first.phone_number or "",
        roles=roles,
        created_at=first.created_at,
    )


def _row_to_role(row) -> Role:
    return Role(id=row.id, name=RoleName(row.name))
