"""
auth/dependencies.py -- FastAPI Depends() helpers for the two-stage auth gate.

Stage "authenticated" -- get_current_user():
  1. Requires an `Authorization: <scheme> <token>` header. Missing or garbled
     header -> UnauthenticatedError (401) before any verification runs.
  2. Verifies the token with the TokenService. Any failure -> InvalidTokenError.
  3. Re-resolves the claim's user id against the UserStore. A token that
     outlived its account -> InvalidTokenError (not NotFound, so the response
     does not reveal whether an account exists).
  4. Attaches the live User record to request.state.user.

Stage "admin" -- require_admin():
  Always composed after get_current_user through Depends(). Reads the user
  attached in step 4 and checks the live is_admin flag from the stored record,
  never the isAdmin claim inside the token. Never re-verifies the token.

Both stages raise domain errors from core.errors; api/main.py maps them to
responses.

Layer rule: no imports from api/ or events/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService
from core.errors import ForbiddenError, InvalidTokenError, UnauthenticatedError


def _extract_token(request: Request) -> str:
    """Return the token part of `Authorization: <scheme> <token>`.

    The scheme itself is not checked ("Bearer" is conventional, any word is
    accepted). A header without a second part is a garbled credential.
    """
    auth_header = request.headers.get("Authorization", "").strip()
    if not auth_header:
        raise UnauthenticatedError()
    parts = auth_header.split()
    if len(parts) != 2:
        raise UnauthenticatedError("Token mal formatado")
    return parts[1]


def get_current_user(request: Request) -> User:
    """Require a valid token for a user that still exists.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = _extract_token(request)
    token_service: TokenService = request.app.state.token_service
    user_store: UserStore = request.app.state.user_store

    claims = token_service.verify(token)
    user = user_store.get_by_id(claims["id"])
    if user is None:
        raise InvalidTokenError()

    request.state.user = user
    return user


def require_admin(request: Request, _user: User = Depends(get_current_user)) -> User:
    """Require the attached user to be an admin. Raises ForbiddenError otherwise.

    Use as a FastAPI dependency:
        @router.post("/admin-only")
        def route(user: User = Depends(require_admin)): ...
    """
    user: User | None = getattr(request.state, "user", None)
    if user is None or not user.is_admin:
        raise ForbiddenError()
    return user
