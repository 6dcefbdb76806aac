"""
API request and response models for APIREST REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in users/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format is camelCase (lastLogin, isActive) and phones keep the
"contrycode" spelling existing clients already send.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from users.models import Phone, User

# Shared config: camelCase on the wire, snake_case in Python, either accepted on input.
_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Phones
# ---------------------------------------------------------------------------


class PhoneIn(BaseModel):
    """One phone in a registration or update request."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    number: str = Field(min_length=1, max_length=30)
    citycode: str = Field(min_length=1, max_length=10)
    country_code: str = Field(alias="contrycode", min_length=1, max_length=10)

    def to_domain(self) -> Phone:
        return Phone(number=self.number, citycode=self.citycode, country_code=self.country_code)


class PhoneOut(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    number: str
    citycode: str
    country_code: str = Field(alias="contrycode")

    @classmethod
    def from_domain(cls, phone: Phone) -> "PhoneOut":
        return cls(number=phone.number, citycode=phone.citycode, country_code=phone.country_code)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class UserRegistrationRequest(BaseModel):
    """Request body for POST /api/register.

    Email and password formats are checked by UserService, not here, so a
    duplicate email is reported before a malformed one.
    """

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    # bcrypt ignores everything past 72 bytes.
    password: str = Field(min_length=1, max_length=72)
    phones: list[PhoneIn] = Field(default_factory=list, max_length=20)


class LoginRequest(BaseModel):
    """Request body for POST /api/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)


class UserUpdate(BaseModel):
    """Request body for PATCH /api/users/{id}. Omitted fields stay unchanged.

    isActive=false deactivates the account. A deactivated owner can no longer
    authenticate, so the flag cannot be turned back on through this endpoint.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[str] = Field(default=None, min_length=1, max_length=72)
    phones: Optional[list[PhoneIn]] = Field(default=None, max_length=20)
    is_active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Response for POST /api/register and POST /api/login."""

    model_config = ConfigDict(frozen=True, **_CAMEL)

    id: UUID
    created: str
    modified: str
    last_login: str
    token: str
    is_active: bool

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            created=user.created,
            modified=user.modified,
            last_login=user.last_login,
            token=user.token or "",
            is_active=user.is_active,
        )


class UserDetail(BaseModel):
    """Profile view returned by the /api/users endpoints. Never includes the token or password."""

    model_config = ConfigDict(frozen=True, **_CAMEL)

    id: UUID
    name: str
    email: str
    phones: list[PhoneOut]
    created: str
    modified: str
    last_login: str
    is_active: bool

    @classmethod
    def from_domain(cls, user: User) -> "UserDetail":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phones=[PhoneOut.from_domain(p) for p in user.phones],
            created=user.created,
            modified=user.modified,
            last_login=user.last_login,
            is_active=user.is_active,
        )


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    mensaje: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
