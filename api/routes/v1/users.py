"""
api/routes/v1/users.py -- Registration, login and user account REST endpoints.

Routes (mounted under /api):
  POST   /register          -- create an account; returns its first token
  POST   /login             -- email + password; rotates the token
  GET    /users             -- list accounts (requires auth)
  GET    /users/me          -- the caller's own profile (requires auth)
  GET    /users/{user_id}   -- one profile (requires auth)
  PATCH  /users/{user_id}   -- partial update (requires auth, owner only)
  DELETE /users/{user_id}   -- remove the account (requires auth, owner only)

Domain failures are raised by UserService as users.exceptions errors and
turned into {"mensaje": ...} responses by the handler in api/main.py.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import LoginRequest, UserDetail, UserRegistrationRequest, UserResponse, UserUpdate
from auth.dependencies import get_current_user
from core.config import get_settings
from users.models import User
from users.service import UserService

_settings = get_settings()

# Auth policy:
# - POST   /register, /login:      public -- rate limited per client IP
# - GET    /users, /users/*:       requires auth (get_current_user)
# - PATCH  /users/{id}:            requires auth + caller must own the account
# - DELETE /users/{id}:            requires auth + caller must own the account
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserResponse, status_code=201)
@limiter.limit(_settings.register_rate_limit)
def register(request: Request, body: UserRegistrationRequest) -> UserResponse:
    """Register a new user and return its id, timestamps and access token."""
    service: UserService = request.app.state.user_service
    user = service.register(
        name=body.name,
        email=body.email,
        password=body.password,
        phones=[p.to_domain() for p in body.phones],
    )
    return UserResponse.from_domain(user)


@router.post("/login", response_model=UserResponse)
@limiter.limit(_settings.login_rate_limit)
def login(request: Request, response: Response, body: LoginRequest) -> UserResponse:
    """Authenticate with email and password and return a freshly issued token.

    The previous token stops working as soon as this one is issued. The same
    generic error is returned for an unknown email and a wrong password.
    """
    service: UserService = request.app.state.user_service
    user = service.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return UserResponse.from_domain(user)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserDetail])
def list_users(request: Request, current_user: User = Depends(get_current_user)) -> list[UserDetail]:
    service: UserService = request.app.state.user_service
    return [UserDetail.from_domain(u) for u in service.list_users()]


@router.get("/users/me", response_model=UserDetail)
def me(current_user: User = Depends(get_current_user)) -> UserDetail:
    """Return the profile of the account that owns the presented token."""
    return UserDetail.from_domain(current_user)


@router.get("/users/{user_id}", response_model=UserDetail)
def get_user(request: Request, user_id: UUID, current_user: User = Depends(get_current_user)) -> UserDetail:
    service: UserService = request.app.state.user_service
    return UserDetail.from_domain(service.get(user_id))


@router.patch("/users/{user_id}", response_model=UserDetail)
def update_user(
    request: Request,
    user_id: UUID,
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
) -> UserDetail:
    """Update name, password or phones of the caller's own account, or deactivate it.

    phones replaces the stored list. Changing the password or deactivating the
    account invalidates the presented token for every later request.
    """
    _require_owner(user_id, current_user)
    service: UserService = request.app.state.user_service
    user = service.update(
        user_id,
        name=body.name,
        password=body.password,
        phones=[p.to_domain() for p in body.phones] if body.phones is not None else None,
        is_active=body.is_active,
    )
    return UserDetail.from_domain(user)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: UUID, current_user: User = Depends(get_current_user)) -> Response:
    """Delete the caller's own account together with its phones."""
    _require_owner(user_id, current_user)
    service: UserService = request.app.state.user_service
    service.delete(user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_owner(user_id: UUID, current_user: User) -> None:
    if current_user.id != user_id:
        raise HTTPException(status_code=403, detail="No autorizado para modificar este usuario")
