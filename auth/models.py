"""
auth/models.py -- Domain dataclass for the authentication entity.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in events/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/ or events/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """Represents a registered identity.

    Users are immutable after registration: there is no profile edit, so the
    name returned for an event owner never drifts from what was registered.

    hashed_password is the bcrypt hash. The plaintext never reaches the store
    and the hash never leaves the API layer (UserResponse omits it).
    """

    name: str
    email: str  # unique, compared case-sensitively as stored
    hashed_password: str
    is_admin: bool = False
    id: int | None = None
    created_at: str | None = None
