"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Clients authenticate with an "Authorization: Bearer <token>" header carrying
the JWT handed out by POST /api/register or POST /api/login.

A token is accepted only when:
  1. its signature and expiry verify,
  2. its subject resolves to an active user, and
  3. it is the token currently persisted on that user.

Rule 3 means a new login revokes every token issued before it.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
"""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request

from auth.tokens import decode_access_token
from users.models import User


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_current_user(request: Request) -> User | None:
    """Attempt to authenticate the request via its Bearer token.

    Returns the authenticated User on success, None on any failure.
    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    token = _bearer_token(request)
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    user = request.app.state.user_store.get_by_email(payload["sub"])
    if user is None or not user.is_active or not user.token:
        return None
    if not hmac.compare_digest(user.token, token):
        return None
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        message = "Token inválido o expirado" if _bearer_token(request) else "Autenticación requerida"
        raise HTTPException(
            status_code=401,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
