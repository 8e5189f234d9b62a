"""
api/routes/events.py -- Calendar endpoints.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /events             -- public list, ordered by (date, time)
  GET    /myevents           -- caller's own events (requires auth)
  POST   /events             -- create (requires auth + admin)
  GET    /events/{event_id}  -- detail (requires auth + admin)
  PUT    /events/{event_id}  -- replace, owner only (requires auth + admin)
  DELETE /events/{event_id}  -- delete, owner only (requires auth + admin)

All rules (validation, one event per date, ownership) live in
events/scheduler.SchedulingEngine. Handlers only translate between HTTP
models and domain objects.

createdBy in responses is resolved from the user store at response time,
keyed by the event's owner_id, so ownership never depends on a display name.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import EventIn, EventResponse, MessageResponse
from auth.dependencies import get_current_user, require_admin
from auth.models import User
from auth.store import UserStore
from core.errors import storage_errors
from events.models import Event
from events.scheduler import SchedulingEngine

router = APIRouter()


def _engine(request: Request) -> SchedulingEngine:
    return request.app.state.scheduler


def _render(request: Request, events: list[Event]) -> list[EventResponse]:
    user_store: UserStore = request.app.state.user_store
    with storage_errors("Erro ao listar eventos."):
        names = user_store.get_names({e.owner_id for e in events})
    return [EventResponse.from_event(e, names.get(e.owner_id)) for e in events]


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@router.get("/events", response_model=list[EventResponse])
def list_events(request: Request) -> list[EventResponse]:
    """Return every event ordered by date, then time. No authentication."""
    return _render(request, _engine(request).list_all())


# ---------------------------------------------------------------------------
# Authenticated
# ---------------------------------------------------------------------------


@router.get("/myevents", response_model=list[EventResponse])
def list_my_events(request: Request, current_user: User = Depends(get_current_user)) -> list[EventResponse]:
    """Return the events created by the caller, ordered by date, then time."""
    return _render(request, _engine(request).list_mine(current_user))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.post("/events", response_model=EventResponse, status_code=201)
def create_event(
    request: Request,
    body: EventIn,
    current_user: User = Depends(require_admin),
) -> EventResponse:
    """Schedule a new event. Fails with 400 if the date is already taken."""
    event = _engine(request).create(current_user, body.to_draft())
    return EventResponse.from_event(event, current_user.name)


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(
    request: Request,
    event_id: int,
    current_user: User = Depends(require_admin),
) -> EventResponse:
    event = _engine(request).get_by_id(event_id)
    return _render(request, [event])[0]


@router.put("/events/{event_id}", response_model=EventResponse)
def update_event(
    request: Request,
    event_id: int,
    body: EventIn,
    current_user: User = Depends(require_admin),
) -> EventResponse:
    """Replace an event's fields. Only its owner may do this, admin or not."""
    event = _engine(request).update(current_user, event_id, body.to_draft())
    return EventResponse.from_event(event, current_user.name)


@router.delete("/events/{event_id}", response_model=MessageResponse)
def delete_event(
    request: Request,
    event_id: int,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    """Delete an event. Only its owner may do this."""
    _engine(request).delete(current_user, event_id)
    return MessageResponse(message="Evento excluído com sucesso.")
