"""
auth/tokens.py -- JWT token service, password hashing, and login verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       id, name, email, isAdmin, and expiry. TokenService.verify() raises
       InvalidTokenError on any failure -- the auth dependency turns that
       into a 401. The service never consults storage; checking that the
       user still exists is the auth dependency's job.

  Passwords: bcrypt with a fixed cost factor and a per-hash salt. The
       _DUMMY_HASH constant enables timing equalization in
       authenticate_user() so response time does not reveal whether an email
       is registered.

  Secret: TokenService receives a Settings instance in its constructor and
       copies the secret and lifetime out of it. The settings object is built
       once at startup (core.config.get_settings); a missing JWT_SECRET fails
       there, never per request.

Layer rule: no imports from api/ or events/. Import from core/ is allowed --
core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.errors import InvalidCredentialsError, InvalidTokenError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore
    from core.config import Settings

logger = logging.getLogger("agenda.auth")

_ALGORITHM = "HS256"

# bcrypt cost factor. 10 rounds keeps login under ~100ms on commodity hardware.
_BCRYPT_ROUNDS = 10

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are truncated by bcrypt. The API layer caps
    password length at 72 characters (Pydantic field) so this never bites.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("agenda_timing_dummy")


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------

# Claim name -> accepted Python types. verify() rejects tokens whose payload
# does not carry every claim with the right type. bool is checked before int
# because bool is a subclass of int.
_REQUIRED_CLAIMS: dict[str, tuple[type, ...]] = {
    "id": (int,),
    "name": (str,),
    "email": (str,),
    "isAdmin": (bool,),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue and verify signed, time-limited identity tokens.

    Usage:
        service = TokenService(get_settings())
        token = service.issue(user)
        claims = service.verify(token)   # raises InvalidTokenError

    clock is injectable so tests can mint tokens that are already expired.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] | None = None) -> None:
        self._secret = settings.jwt_secret
        self._expire_seconds = settings.jwt_expires_in
        self._clock = clock or _utcnow

    def issue(self, user: User) -> str:
        """Encode a signed JWT with the user's identity and configured expiry."""
        expire = self._clock() + timedelta(seconds=self._expire_seconds)
        payload = {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "isAdmin": user.is_admin,
            "exp": expire,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> dict:
        """Decode and verify a JWT. Returns the claim set.

        Raises InvalidTokenError if the signature does not match, the token is
        structurally malformed, it has expired or carries no exp, or a required
        claim is missing or has the wrong type.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM], options={"require_exp": True})
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
            raise InvalidTokenError() from exc
        for claim, types in _REQUIRED_CLAIMS.items():
            value = payload.get(claim)
            if not isinstance(value, types) or (claim == "id" and isinstance(value, bool)):
                raise InvalidTokenError()
        return payload


# ---------------------------------------------------------------------------
# Login verification (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the email is registered:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success. Raises InvalidCredentialsError on any
    failure, with the same message for both cases.
    """
    user = store.get_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentialsError()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()
    return user
