"""
users/models.py -- Domain dataclasses for user accounts.

Pure data containers with zero logic. Business rules (format checks, token
issuance, hashing) live in users/service.py; SQL lives in users/store.py.

Layer rule: no imports from api/, auth/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class Phone:
    """A phone number attached to a user.

    country_code travels as "contrycode" on the wire; the API model owns that alias.
    id is None before the record is written to the database.
    """

    number: str
    citycode: str
    country_code: str
    id: int | None = None


@dataclass
class User:
    """A registered account.

    password always holds the bcrypt hash, never the plaintext.
    token is the most recently issued JWT -- only that token authenticates.
    Timestamps are ISO 8601 UTC strings set by the service.
    """

    name: str
    email: str
    password: str
    id: UUID | None = None
    created: str = ""
    modified: str = ""
    last_login: str = ""
    token: str | None = None
    is_active: bool = True
    phones: list[Phone] = field(default_factory=list)
