"""
events/scheduler.py -- Scheduling engine: the business rules of the calendar.

Responsibilities:
  - Validate drafts (non-empty title/time/location, known category, real date)
    before anything touches storage.
  - Derive color from category via CATEGORY_COLORS. Unknown categories are a
    validation failure, never a silent default.
  - Enforce one event per calendar date. find_by_date() is a fast pre-check
    that yields a friendly error; the UNIQUE constraint in events/store.py is
    the authoritative guard, and an IntegrityError from a lost race is mapped
    to the same DateConflictError.
  - Ownership: only the event's owner may update or delete it. Being an admin
    grants no override.

Every operation runs inside core.errors.storage_errors(), so an unexpected
database failure surfaces as an opaque StorageUnavailableError and is logged
here with full detail.

Layer rule: may import from core/, auth/models, and events/. Never from api/.
"""

from __future__ import annotations

import datetime
import logging

from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.errors import DateConflictError, ForbiddenError, NotFoundError, ValidationError, storage_errors
from events.models import CATEGORY_COLORS, Event, EventDraft
from events.store import EventStore

logger = logging.getLogger("agenda.events")

_UPDATE_CONFLICT_MESSAGE = "Não é possível editar o evento, pois já existe um evento no mesmo dia."

# Largest value a 64-bit INTEGER primary key can hold
_MAX_EVENT_ID = 2**63 - 1


def derive_color(category: str) -> str:
    """Return the display color for a category. Raises ValidationError if unknown."""
    try:
        return CATEGORY_COLORS[category]
    except KeyError:
        raise ValidationError(_category_message()) from None


def _category_message() -> str:
    return "Categoria inválida. Use uma de: " + ", ".join(CATEGORY_COLORS)


def validate_draft(draft: EventDraft) -> None:
    """Raise ValidationError listing every problem with the draft, if any."""
    errors: list[str] = []
    if not (draft.title or "").strip():
        errors.append("Título é obrigatório")
    if not isinstance(draft.date, datetime.date) or isinstance(draft.date, datetime.datetime):
        errors.append("Data é obrigatória")
    if not (draft.time or "").strip():
        errors.append("Horário é obrigatório")
    if not (draft.location or "").strip():
        errors.append("Local é obrigatório")
    if draft.category not in CATEGORY_COLORS:
        errors.append(_category_message())
    if errors:
        raise ValidationError(errors)


class SchedulingEngine:
    """Calendar operations on behalf of an acting user.

    Usage:
        engine = SchedulingEngine(EventStore())
        event = engine.create(actor, EventDraft(...))
        engine.update(actor, event.id, EventDraft(...))
    """

    def __init__(self, store: EventStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_all(self) -> list[Event]:
        """Every event, ordered by (date, time). Public: no actor needed."""
        with storage_errors("Erro ao listar eventos."):
            return self.store.list_events()

    def list_mine(self, actor: User) -> list[Event]:
        """Events owned by `actor`, ordered by (date, time)."""
        with storage_errors("Erro ao listar eventos do usuário."):
            return self.store.list_events(owner_id=actor.id)

    def get_by_id(self, event_id: int) -> Event:
        if not 1 <= event_id <= _MAX_EVENT_ID:
            raise NotFoundError()
        with storage_errors("Erro ao buscar evento."):
            event = self.store.get_by_id(event_id)
        if event is None:
            raise NotFoundError()
        return event

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, actor: User, draft: EventDraft) -> Event:
        """Validate, check the date, and persist a new event owned by `actor`.

        Raises ValidationError or DateConflictError. Nothing is written when
        either is raised.
        """
        validate_draft(draft)
        color = derive_color(draft.category)
        with storage_errors("Erro ao criar evento."):
            if self.store.find_by_date(draft.date) is not None:
                raise DateConflictError()
            event = Event(
                title=draft.title.strip(),
                date=draft.date,
                time=draft.time.strip(),
                location=draft.location.strip(),
                description=draft.description,
                category=draft.category,
                color=color,
                owner_id=actor.id,
                created_by=actor.name,
            )
            try:
                event_id = self.store.create_event(event)
            except IntegrityError:
                logger.info("Date %s taken by a concurrent create", draft.date)
                raise DateConflictError() from None
            created = self.store.get_by_id(event_id)
        logger.info("Event %s created on %s by user %s", event_id, draft.date, actor.id)
        return created

    def update(self, actor: User, event_id: int, draft: EventDraft) -> Event:
        """Replace every mutable field of an event the actor owns.

        Check order: NotFound, Forbidden, Validation, DateConflict. The event
        being updated never conflicts with itself, so keeping the same date is
        always allowed.
        """
        existing = self.get_by_id(event_id)
        self._check_owner(actor, existing, "Você não tem permissão para editar este evento.")
        validate_draft(draft)
        color = derive_color(draft.category)
        with storage_errors("Erro ao atualizar evento."):
            if self.store.find_by_date(draft.date, exclude_id=event_id) is not None:
                raise DateConflictError(_UPDATE_CONFLICT_MESSAGE)
            try:
                updated = self.store.update_event(
                    event_id,
                    title=draft.title.strip(),
                    date=draft.date,
                    time=draft.time.strip(),
                    location=draft.location.strip(),
                    description=draft.description,
                    category=draft.category,
                    color=color,
                )
            except IntegrityError:
                logger.info("Date %s taken by a concurrent write", draft.date)
                raise DateConflictError(_UPDATE_CONFLICT_MESSAGE) from None
            if not updated:
                # Deleted between the ownership check and the write
                raise NotFoundError()
            event = self.store.get_by_id(event_id)
        logger.info("Event %s updated by user %s", event_id, actor.id)
        return event

    def delete(self, actor: User, event_id: int) -> None:
        """Remove an event the actor owns. Raises NotFound, then Forbidden."""
        existing = self.get_by_id(event_id)
        self._check_owner(actor, existing, "Você não tem permissão para excluir este evento.")
        with storage_errors("Erro ao excluir evento."):
            if not self.store.delete_event(event_id):
                raise NotFoundError()
        logger.info("Event %s deleted by user %s", event_id, actor.id)

    @staticmethod
    def _check_owner(actor: User, event: Event, message: str) -> None:
        # Identity-based: admins get no override on other owners' events.
        if event.owner_id != actor.id:
            raise ForbiddenError(message)
