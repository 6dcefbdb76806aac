"""
users/service.py -- Business rules for user accounts.

Pure application logic: validation, hashing, token issuance, timestamps.
No HTTP concepts here -- failures raise users.exceptions errors and the API
layer maps them to status codes. The CLI (main.py) reuses the same service.

Registration rule order matters: a duplicate email is reported before a
malformed one, so re-submitting an already stored (even odd-looking)
address always yields "El correo ya registrado".
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from auth.tokens import authenticate_user, create_access_token, hash_password
from users.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidEmailFormatError,
    InvalidPasswordFormatError,
    NoChangesError,
    UserNotFoundError,
)
from users.models import Phone, User
from users.store import UserStore

logger = logging.getLogger("apirest.users")

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserService:
    """Registration, login and profile management on top of a UserStore.

    Usage:
        service = UserService(store, password_pattern=settings.password_pattern)
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", phones=[])
    """

    def __init__(self, store: UserStore, password_pattern: str) -> None:
        self.store = store
        self._password_re = re.compile(password_pattern)

    # ------------------------------------------------------------------
    # Registration / login
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, phones: list[Phone]) -> User:
        """Create a user, issue its first token and persist both.

        Raises EmailAlreadyRegisteredError, InvalidEmailFormatError or
        InvalidPasswordFormatError.
        """
        if self.store.email_exists(email):
            raise EmailAlreadyRegisteredError()
        if not EMAIL_PATTERN.fullmatch(email):
            raise InvalidEmailFormatError()
        self._check_password(password)

        now = _now_iso()
        user = User(
            id=uuid.uuid4(),
            name=name,
            email=email,
            password=hash_password(password),
            created=now,
            modified=now,
            last_login=now,
            token=create_access_token(email),
            is_active=True,
            phones=[Phone(number=p.number, citycode=p.citycode, country_code=p.country_code) for p in phones],
        )
        try:
            self.store.create_user(user)
        except IntegrityError as exc:
            # Another request stored the same email between the check and the insert.
            raise EmailAlreadyRegisteredError() from exc

        logger.info("User registered id=%s phones=%d", user.id, len(user.phones))
        return self.get(user.id)

    def login(self, email: str, password: str) -> User:
        """Verify credentials, rotate the token and stamp last_login."""
        user = authenticate_user(self.store, email, password)
        if user is None:
            logger.warning("Failed login attempt")
            raise InvalidCredentialsError()
        token = create_access_token(user.email)
        self.store.record_login(user.id, token, _now_iso())
        logger.info("User logged in id=%s", user.id)
        return self.get(user.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, user_id: UUID) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def list_users(self) -> list[User]:
        return self.store.list_users()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update(
        self,
        user_id: UUID,
        name: str | None = None,
        password: str | None = None,
        phones: list[Phone] | None = None,
        is_active: bool | None = None,
    ) -> User:
        """Apply a partial profile update and refresh `modified`.

        phones, when given, replaces the whole stored list. A password change
        clears the stored token, so the account must log in again. Only the
        owner can reach this through the API and an inactive owner cannot
        authenticate, so is_active is in practice a one-way deactivation.
        """
        if name is None and password is None and phones is None and is_active is None:
            raise NoChangesError()

        fields: dict = {}
        if name is not None:
            fields["name"] = name
        if password is not None:
            self._check_password(password)
            fields["password"] = hash_password(password)
            fields["token"] = None
        if is_active is not None:
            fields["is_active"] = is_active
        fields["modified"] = _now_iso()

        if not self.store.update_user(user_id, phones=phones, **fields):
            raise UserNotFoundError()
        logger.info("User updated id=%s fields=%s", user_id, sorted(k for k in fields if k != "modified"))
        return self.get(user_id)

    def delete(self, user_id: UUID) -> None:
        if not self.store.delete_user(user_id):
            raise UserNotFoundError()
        logger.info("User deleted id=%s", user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_password(self, password: str) -> None:
        if not self._password_re.fullmatch(password):
            raise InvalidPasswordFormatError()
