"""
API request and response models for the agenda REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
events/models.py, which own the internal domain representation. Route
handlers map between the two.

Wire format uses camelCase keys (isAdmin, createdBy, createdAt). Python code
uses snake_case attributes; the alias generator bridges the two, and
populate_by_name lets tests and handlers build models with either spelling.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from events.models import Event, EventDraft

# Deliberately loose: one "@" with something on both sides and a dot in the
# domain. Deliverability is not our problem; obvious typos are.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_CAMEL_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Users and login
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /user."""

    model_config = _CAMEL

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    # 72 is bcrypt's input limit
    password: str = Field(min_length=6, max_length=72)
    is_admin: bool = False


class UserResponse(BaseModel):
    """A user as returned to callers. Never carries the password hash."""

    model_config = _CAMEL_FROZEN

    id: int
    name: str
    email: str
    is_admin: bool
    created_at: str


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    model_config = ConfigDict(frozen=True)

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1, max_length=72)


class LoginResponse(BaseModel):
    """Response body for POST /login."""

    model_config = _CAMEL_FROZEN

    id: int
    name: str
    email: str
    is_admin: bool
    token: str


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventIn(BaseModel):
    """Request body for POST /events and PUT /events/{id}.

    Only types and presence are checked here. Emptiness of title/time/location
    and membership of category in the fixed set are business rules, enforced
    by events/scheduler.validate_draft so they hold for every caller, not just
    HTTP ones.
    """

    model_config = _CAMEL

    title: str
    date: datetime.date
    time: str
    location: str
    description: Optional[str] = None
    category: str

    @field_validator("date", mode="before")
    @classmethod
    def truncate_datetime(cls, value):
        """Accept an ISO datetime string and keep only its calendar day.

        Clients commonly send "2024-05-01T00:00:00.000Z" for a date picker
        value. Time-of-day is never part of the event date.
        """
        if isinstance(value, str) and len(value) > 10 and value[10] in ("T", " "):
            return value[:10]
        return value

    def to_draft(self) -> EventDraft:
        return EventDraft(
            title=self.title,
            date=self.date,
            time=self.time,
            location=self.location,
            description=self.description,
            category=self.category,
        )


class EventResponse(BaseModel):
    """An event as returned to callers. date is serialized as YYYY-MM-DD."""

    model_config = _CAMEL_FROZEN

    id: int
    title: str
    date: datetime.date
    time: str
    location: str
    description: Optional[str]
    category: str
    color: str
    created_by: str
    created_at: str
    updated_at: str

    @classmethod
    def from_event(cls, event: Event, owner_name: Optional[str] = None) -> "EventResponse":
        """Build an EventResponse from a domain Event.

        owner_name is the live name resolved from the user store. When the
        owner no longer exists, the name snapshot taken at creation is used.
        """
        return cls(
            id=event.id,
            title=event.title,
            date=event.date,
            time=event.time,
            location=event.location,
            description=event.description,
            category=event.category,
            color=event.color,
            created_by=owner_name or event.created_by,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Plain confirmation body, e.g. after a delete."""

    model_config = ConfigDict(frozen=True)

    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses.

    error is a single message, or a list when several fields failed.
    """

    model_config = ConfigDict(frozen=True)

    error: str | list[str]


class ServiceInfoResponse(BaseModel):
    """Response for GET /."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    version: str
    status: str = "ok"
