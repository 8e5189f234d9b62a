"""Unit tests for events/scheduler.py -- the calendar's business rules.

Covers:
- Category -> color derivation; unknown categories rejected before any write
- Field validation collects every problem
- One event per date: pre-check, storage-level race, and concurrent writers
- Updating an event onto its own date never conflicts with itself
- Ownership: only the owner may update or delete, admins included
- NotFound ordering before Forbidden
- Unexpected storage failures surface as StorageUnavailableError
"""

import threading
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from auth.models import User
from core.errors import (
    DateConflictError,
    ForbiddenError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from events.models import CATEGORY_COLORS, Category, EventDraft
from events.scheduler import SchedulingEngine, derive_color, validate_draft
from events.store import EventStore

ANA = User(id=1, name="Ana", email="ana@x.com", hashed_password="h", is_admin=True)
BIA = User(id=2, name="Bia", email="bia@x.com", hashed_password="h", is_admin=True)


def _draft(day: date = date(2024, 5, 1), category: str = "Culto", **overrides) -> EventDraft:
    fields = {
        "title": "Culto de domingo",
        "date": day,
        "time": "19:00",
        "location": "Templo",
        "category": category,
        "description": None,
    }
    fields.update(overrides)
    return EventDraft(**fields)


# ---------------------------------------------------------------------------
# Color derivation and validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "category, color",
    [
        ("Culto", "blue"),
        ("Reunião", "magenta"),
        ("Estudo", "orange"),
        ("Ensaio", "teal"),
        ("Evento Especial", "green"),
        ("Outro", "gray"),
    ],
)
def test_derive_color(category, color):
    assert derive_color(category) == color


def test_color_map_covers_every_category():
    assert set(CATEGORY_COLORS) == {c.value for c in Category}


def test_derive_color_unknown_category():
    with pytest.raises(ValidationError):
        derive_color("Festa")


def test_validate_draft_collects_all_errors():
    with pytest.raises(ValidationError) as exc_info:
        validate_draft(_draft(title=" ", time="", location="", category="culto", date=None))
    messages = exc_info.value.messages
    assert "Título é obrigatório" in messages
    assert "Horário é obrigatório" in messages
    assert "Local é obrigatório" in messages
    assert "Data é obrigatória" in messages
    assert any(m.startswith("Categoria inválida") for m in messages)


def test_unknown_category_rejected_before_any_write(scheduler: SchedulingEngine, monkeypatch):
    def _no_write(*args, **kwargs):
        raise AssertionError("store was written")

    monkeypatch.setattr(scheduler.store, "create_event", _no_write)
    with pytest.raises(ValidationError):
        scheduler.create(ANA, _draft(category="Aniversário"))
    assert scheduler.list_all() == []


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_create_sets_derived_fields(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft(category="Ensaio", title="  Ensaio  "))
    assert event.id is not None
    assert event.title == "Ensaio"
    assert event.color == "teal"
    assert event.owner_id == ANA.id
    assert event.created_by == "Ana"


def test_distinct_dates_all_succeed(scheduler: SchedulingEngine):
    for day in range(1, 8):
        scheduler.create(ANA, _draft(date(2024, 5, day)))
    assert len(scheduler.list_all()) == 7


def test_same_date_conflicts(scheduler: SchedulingEngine):
    scheduler.create(ANA, _draft(date(2024, 5, 1), time="09:00"))
    with pytest.raises(DateConflictError) as exc_info:
        scheduler.create(BIA, _draft(date(2024, 5, 1), time="20:00"))
    assert exc_info.value.message == "Já existe um evento nessa data."
    assert len(scheduler.list_all()) == 1


def test_storage_constraint_is_authoritative(scheduler: SchedulingEngine, monkeypatch):
    """A writer that slipped past the pre-check still gets DateConflictError."""
    scheduler.create(ANA, _draft(date(2024, 5, 1)))
    monkeypatch.setattr(scheduler.store, "find_by_date", lambda *args, **kwargs: None)
    with pytest.raises(DateConflictError):
        scheduler.create(BIA, _draft(date(2024, 5, 1)))
    assert len(scheduler.list_all()) == 1


def test_concurrent_creates_same_date_exactly_one_wins(tmp_path):
    store = EventStore(f"sqlite:///{tmp_path / 'race.db'}")
    engine = SchedulingEngine(store)
    writers = 4
    barrier = threading.Barrier(writers)
    outcomes: list[str] = []
    lock = threading.Lock()

    def _attempt(n: int) -> None:
        barrier.wait()
        try:
            engine.create(ANA, _draft(date(2024, 5, 1), title=f"Evento {n}"))
            result = "created"
        except DateConflictError:
            result = "conflict"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=_attempt, args=(n,)) for n in range(writers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    try:
        assert sorted(outcomes) == ["conflict"] * (writers - 1) + ["created"]
        assert len(store.list_events()) == 1
    finally:
        store.close()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_list_mine_filters_by_owner(scheduler: SchedulingEngine):
    scheduler.create(ANA, _draft(date(2024, 5, 3)))
    scheduler.create(BIA, _draft(date(2024, 5, 2)))
    scheduler.create(ANA, _draft(date(2024, 5, 1)))
    assert [e.date for e in scheduler.list_mine(ANA)] == [date(2024, 5, 1), date(2024, 5, 3)]
    assert [e.date for e in scheduler.list_mine(BIA)] == [date(2024, 5, 2)]


def test_get_by_id_not_found(scheduler: SchedulingEngine):
    with pytest.raises(NotFoundError):
        scheduler.get_by_id(404)


def test_out_of_range_id_is_not_found(scheduler: SchedulingEngine):
    for event_id in (0, -1, 10**20):
        with pytest.raises(NotFoundError):
            scheduler.get_by_id(event_id)


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def test_update_keeping_own_date_never_conflicts(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft(date(2024, 5, 1)))
    updated = scheduler.update(ANA, event.id, _draft(date(2024, 5, 1), title="Culto especial"))
    assert updated.title == "Culto especial"
    assert updated.date == date(2024, 5, 1)


def test_update_moves_date_and_recolors(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft(date(2024, 5, 1)))
    updated = scheduler.update(ANA, event.id, _draft(date(2024, 5, 9), category="Evento Especial"))
    assert updated.date == date(2024, 5, 9)
    assert updated.color == "green"
    assert scheduler.store.find_by_date(date(2024, 5, 1)) is None


def test_update_onto_taken_date_conflicts(scheduler: SchedulingEngine):
    scheduler.create(ANA, _draft(date(2024, 5, 1)))
    event = scheduler.create(ANA, _draft(date(2024, 5, 2)))
    with pytest.raises(DateConflictError):
        scheduler.update(ANA, event.id, _draft(date(2024, 5, 1)))
    assert scheduler.get_by_id(event.id).date == date(2024, 5, 2)


def test_update_storage_race_maps_to_conflict(scheduler: SchedulingEngine, monkeypatch):
    scheduler.create(ANA, _draft(date(2024, 5, 1)))
    event = scheduler.create(ANA, _draft(date(2024, 5, 2)))
    monkeypatch.setattr(scheduler.store, "find_by_date", lambda *args, **kwargs: None)
    with pytest.raises(DateConflictError):
        scheduler.update(ANA, event.id, _draft(date(2024, 5, 1)))


def test_update_by_other_admin_forbidden(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft())
    with pytest.raises(ForbiddenError):
        scheduler.update(BIA, event.id, _draft(title="Sequestrado"))
    assert scheduler.get_by_id(event.id).title == "Culto de domingo"


def test_update_missing_is_not_found(scheduler: SchedulingEngine):
    with pytest.raises(NotFoundError):
        scheduler.update(ANA, 999, _draft())


def test_update_revalidates_draft(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft())
    with pytest.raises(ValidationError):
        scheduler.update(ANA, event.id, _draft(category="Festa"))


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


def test_delete_by_owner(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft())
    scheduler.delete(ANA, event.id)
    with pytest.raises(NotFoundError):
        scheduler.get_by_id(event.id)


def test_delete_by_other_admin_forbidden(scheduler: SchedulingEngine):
    event = scheduler.create(ANA, _draft())
    with pytest.raises(ForbiddenError):
        scheduler.delete(BIA, event.id)
    assert scheduler.get_by_id(event.id).id == event.id


def test_delete_missing_is_not_found_before_forbidden(scheduler: SchedulingEngine):
    with pytest.raises(NotFoundError):
        scheduler.delete(BIA, 999)


# ---------------------------------------------------------------------------
# Storage failures
# ---------------------------------------------------------------------------


def test_storage_failure_is_opaque(scheduler: SchedulingEngine, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("SELECT * FROM events", {}, Exception("disk I/O error"))

    monkeypatch.setattr(scheduler.store, "list_events", _boom)
    with pytest.raises(StorageUnavailableError) as exc_info:
        scheduler.list_all()
    assert exc_info.value.status_code == 500
    assert "disk" not in exc_info.value.message
