"""
users/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_phone are the mappers.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Transactions:
  Writes that touch both tables (create_user, update_user with phones,
  delete_user) run inside a single engine.begin() block so a user is never
  persisted without its phones or vice versa.

Layer rule: no imports from api/, auth/ or core/.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from users.models import Phone, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # UUID string form
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("created", String(32), nullable=False),
    Column("modified", String(32), nullable=False),
    Column("last_login", String(32), nullable=False),
    Column("token", Text),
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_phones = Table(
    "phones",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("number", String(30), nullable=False),
    Column("citycode", String(10), nullable=False),
    Column("contrycode", String(10), nullable=False),
)

# Columns update_user() may write. Anything else is a programming error.
_UPDATABLE_FIELDS = {"name", "password", "modified", "last_login", "token", "is_active"}


# ---------------------------------------------------------------------------
# SQLite pragmas
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys is off by default in SQLite,
    which would silently skip the phones ON DELETE CASCADE.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Phone entities.

    Usage:
        store = UserStore("sqlite:///apirest.db")
        store.create_user(user)
        user = store.get_by_email("juan@rodriguez.org")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def email_exists(self, email: str) -> bool:
        """Return True if a user with exactly this email is stored."""
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(_users).where(_users.c.email == email)).scalar()
        return (count or 0) > 0

    def create_user(self, user: User) -> UUID:
        """Insert a user and its phones in one transaction; return the user id.

        The caller assigns user.id. Raises sqlalchemy.exc.IntegrityError if the
        email already exists -- the service turns that into a domain error.
        """
        if user.id is None:
            raise ValueError("create_user() requires a user with an assigned id")
        with self.engine.begin() as conn:
            conn.execute(
                _users.insert().values(
                    id=str(user.id),
                    name=user.name,
                    email=user.email,
                    password=user.password,
                    created=user.created,
                    modified=user.modified,
                    last_login=user.last_login,
                    token=user.token,
                    is_active=1 if user.is_active else 0,
                )
            )
            self._insert_phones(conn, user.id, user.phones)
        return user.id

    def get_by_id(self, user_id: UUID) -> User | None:
        """Look up a user (with phones) by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == str(user_id))).fetchone()
            if row is None:
                return None
            phone_rows = conn.execute(
                _phones.select().where(_phones.c.user_id == row.id).order_by(_phones.c.id)
            ).fetchall()
        return _row_to_user(row, [_row_to_phone(p) for p in phone_rows])

    def get_by_email(self, email: str) -> User | None:
        """Look up a user (with phones) by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
            if row is None:
                return None
            phone_rows = conn.execute(
                _phones.select().where(_phones.c.user_id == row.id).order_by(_phones.c.id)
            ).fetchall()
        return _row_to_user(row, [_row_to_phone(p) for p in phone_rows])

    def list_users(self) -> list[User]:
        """Return all users ordered by creation time, phones included.

        Two queries total: one for users, one for every phone, grouped in Python.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created, _users.c.email)).fetchall()
            phone_rows = conn.execute(_phones.select().order_by(_phones.c.id)).fetchall()
        phones_by_user: dict[str, list[Phone]] = {}
        for p in phone_rows:
            phones_by_user.setdefault(p.user_id, []).append(_row_to_phone(p))
        return [_row_to_user(r, phones_by_user.get(r.id, [])) for r in rows]

    def update_user(self, user_id: UUID, phones: list[Phone] | None = None, **fields) -> bool:
        """Update mutable columns and optionally replace the phone list.

        Accepted fields: name, password, modified, last_login, token, is_active.
        is_active must be passed as bool; this method converts to int for SQLite.
        phones=None leaves phones untouched; phones=[] removes them all.

        Returns True if the user exists, False otherwise.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        with self.engine.begin() as conn:
            exists = conn.execute(select(_users.c.id).where(_users.c.id == str(user_id))).fetchone()
            if exists is None:
                return False
            if fields:
                conn.execute(_users.update().where(_users.c.id == str(user_id)).values(**fields))
            if phones is not None:
                conn.execute(_phones.delete().where(_phones.c.user_id == str(user_id)))
                self._insert_phones(conn, user_id, phones)
        return True

    def record_login(self, user_id: UUID, token: str, when: str) -> None:
        """Persist the freshly issued token and stamp last_login."""
        with self.engine.begin() as conn:
            conn.execute(_users.update().where(_users.c.id == str(user_id)).values(token=token, last_login=when))

    def delete_user(self, user_id: UUID) -> bool:
        """Delete a user and its phones. Returns True if deleted, False if not found."""
        with self.engine.begin() as conn:
            conn.execute(_phones.delete().where(_phones.c.user_id == str(user_id)))
            result = conn.execute(_users.delete().where(_users.c.id == str(user_id)))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_phones(conn, user_id: UUID, phones: list[Phone]) -> None:
        if not phones:
            return
        conn.execute(
            _phones.insert(),
            [
                {
                    "user_id": str(user_id),
                    "number": p.number,
                    "citycode": p.citycode,
                    "contrycode": p.country_code,
                }
                for p in phones
            ],
        )


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, phones: list[Phone]) -> User:
    return User(
        id=UUID(row.id),
        name=row.name,
        email=row.email,
        password=row.password,
        created=row.created,
        modified=row.modified,
        last_login=row.last_login,
        token=row.token,
        is_active=bool(row.is_active),
        phones=phones,
    )


def _row_to_phone(row) -> Phone:
    return Phone(
        id=row.id,
        number=row.number,
        citycode=row.citycode,
        country_code=row.contrycode,
    )
