"""Unit tests for users/service.py -- UserService business rules.

The store is a real in-memory SQLite UserStore; bcrypt and JWT run for real.
Tests focus on:
- registration rule order (duplicate before malformed email)
- password policy from the configured pattern
- token issuance, rotation on login, last_login stamping
- partial updates, NoChangesError, UserNotFoundError
- IntegrityError from a concurrent insert maps to EmailAlreadyRegisteredError
"""

from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from auth.tokens import decode_access_token, verify_password
from users.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidEmailFormatError,
    InvalidPasswordFormatError,
    NoChangesError,
    UserNotFoundError,
)
from users.models import Phone, User
from users.service import EMAIL_PATTERN, UserService

_PHONES = [Phone(number="1234567", citycode="1", country_code="57")]


class TestEmailPattern:
    @pytest.mark.parametrize("email", ["juan@rodriguez.org", "a.b+c@mail.co", "x_y-z@sub.domain.cl"])
    def test_accepts(self, email):
        assert EMAIL_PATTERN.fullmatch(email)

    @pytest.mark.parametrize(
        "email",
        ["juan", "juan@", "@rodriguez.org", "juan@rodriguez", "juan@rodriguez.c", "juan@rodriguez.org\n"],
    )
    def test_rejects(self, email):
        assert EMAIL_PATTERN.fullmatch(email) is None


class TestRegister:
    def test_register_populates_user(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", _PHONES)
        assert user.id is not None
        assert user.is_active is True
        assert user.created == user.modified == user.last_login
        assert user.password != "hunter22"
        assert verify_password("hunter22", user.password)
        assert [p.number for p in user.phones] == ["1234567"]
        assert decode_access_token(user.token)["sub"] == "juan@rodriguez.org"

    def test_token_persisted(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        assert service.store.get_by_id(user.id).token == user.token

    def test_duplicate_email(self, service: UserService):
        service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        with pytest.raises(EmailAlreadyRegisteredError, match="El correo ya registrado"):
            service.register("Otro", "juan@rodriguez.org", "hunter22", [])

    def test_duplicate_checked_before_format(self, service: UserService):
        # A malformed address that slipped into the table (e.g. a legacy import)
        # is still reported as a duplicate, not as a format error.
        service.store.create_user(
            User(id=uuid4(), name="Legacy", email="legacy-no-at", password="x", created="t", modified="t", last_login="t")
        )
        with pytest.raises(EmailAlreadyRegisteredError):
            service.register("Juan", "legacy-no-at", "hunter22", [])

    def test_malformed_email(self, service: UserService):
        with pytest.raises(InvalidEmailFormatError, match="formato incorrecto"):
            service.register("Juan", "juan-at-rodriguez", "hunter22", [])

    def test_trailing_newline_email_rejected(self, service: UserService):
        with pytest.raises(InvalidEmailFormatError):
            service.register("Juan", "juan@rodriguez.org\n", "hunter22", [])
        assert service.list_users() == []

    def test_trailing_newline_is_not_a_second_account(self, service: UserService):
        service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        with pytest.raises(InvalidEmailFormatError):
            service.register("Juan", "juan@rodriguez.org\n", "hunter22", [])
        assert [u.email for u in service.list_users()] == ["juan@rodriguez.org"]

    def test_password_pattern_must_cover_whole_password(self, store):
        digits_only = UserService(store, password_pattern=r"\d{4}")
        with pytest.raises(InvalidPasswordFormatError):
            digits_only.register("Juan", "juan@rodriguez.org", "1234abcd", [])
        with pytest.raises(InvalidPasswordFormatError):
            digits_only.register("Juan", "juan@rodriguez.org", "1234\n", [])
        assert digits_only.register("Juan", "juan@rodriguez.org", "1234", []).id is not None

    @pytest.mark.parametrize("password", ["short1", "onlyletters", "12345678"])
    def test_password_policy(self, service: UserService, password):
        with pytest.raises(InvalidPasswordFormatError):
            service.register("Juan", "juan@rodriguez.org", password, [])

    def test_custom_password_pattern(self, store):
        lenient = UserService(store, password_pattern=r"^.{3,}$")
        assert lenient.register("Juan", "juan@rodriguez.org", "abc", []).id is not None

    def test_concurrent_insert_maps_to_duplicate(self, service: UserService):
        with patch.object(service.store, "create_user", side_effect=IntegrityError("INSERT", {}, Exception())):
            with pytest.raises(EmailAlreadyRegisteredError):
                service.register("Juan", "juan@rodriguez.org", "hunter22", [])


class TestLogin:
    def test_login_rotates_token(self, service: UserService):
        registered = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        logged_in = service.login("juan@rodriguez.org", "hunter22")
        assert logged_in.token != registered.token
        assert logged_in.last_login >= registered.last_login
        assert logged_in.modified == registered.modified

    def test_bad_credentials(self, service: UserService):
        service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        with pytest.raises(InvalidCredentialsError):
            service.login("juan@rodriguez.org", "hunter23")
        with pytest.raises(InvalidCredentialsError):
            service.login("nobody@rodriguez.org", "hunter22")


class TestUpdateAndDelete:
    def test_update_name_refreshes_modified(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", _PHONES)
        updated = service.update(user.id, name="Juan Pablo")
        assert updated.name == "Juan Pablo"
        assert updated.modified >= user.modified
        assert updated.created == user.created
        assert len(updated.phones) == 1

    def test_update_password_is_hashed(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        updated = service.update(user.id, password="newpass99")
        assert verify_password("newpass99", updated.password)

    def test_update_password_clears_token(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        assert service.update(user.id, password="newpass99").token is None
        assert service.login("juan@rodriguez.org", "newpass99").token

    def test_update_name_keeps_token(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        assert service.update(user.id, name="Juan Pablo").token == user.token

    def test_update_rejects_weak_password(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        with pytest.raises(InvalidPasswordFormatError):
            service.update(user.id, password="weak")

    def test_update_nothing(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        with pytest.raises(NoChangesError):
            service.update(user.id)

    def test_update_unknown_user(self, service: UserService):
        with pytest.raises(UserNotFoundError):
            service.update(uuid4(), name="x")

    def test_delete(self, service: UserService):
        user = service.register("Juan", "juan@rodriguez.org", "hunter22", _PHONES)
        service.delete(user.id)
        with pytest.raises(UserNotFoundError):
            service.get(user.id)
        with pytest.raises(UserNotFoundError):
            service.delete(user.id)

    def test_list_users(self, service: UserService):
        service.register("Juan", "juan@rodriguez.org", "hunter22", [])
        service.register("Ana", "ana@perez.cl", "hunter22", [])
        assert {u.email for u in service.list_users()} == {"juan@rodriguez.org", "ana@perez.cl"}
