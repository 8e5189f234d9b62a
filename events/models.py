"""
events/models.py -- Domain dataclasses and fixed vocabularies for the calendar.

These are pure data containers. All business logic (validation, color
derivation, ownership, date conflicts) lives in events/scheduler.py, and all
SQL lives in events/store.py.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Category(str, Enum):
    culto = "Culto"
    reuniao = "Reunião"
    estudo = "Estudo"
    ensaio = "Ensaio"
    evento_especial = "Evento Especial"
    outro = "Outro"


# Fixed and exhaustive: every Category has exactly one color.
CATEGORY_COLORS: dict[str, str] = {
    Category.culto.value: "blue",
    Category.reuniao.value: "magenta",
    Category.estudo.value: "orange",
    Category.ensaio.value: "teal",
    Category.evento_especial.value: "green",
    Category.outro.value: "gray",
}


@dataclass
class EventDraft:
    """User-supplied fields for creating or replacing an event.

    color, owner and timestamps are never part of a draft: the scheduler
    derives or assigns them.
    """

    title: str
    date: Optional[datetime.date]
    time: str
    location: str
    category: str
    description: Optional[str] = None


@dataclass
class Event:
    """A scheduled occurrence. At most one Event exists per calendar date.

    date is compared by calendar-day equality only; time is a free-text
    display string ("19:30", "manhã") and plays no part in conflicts.

    owner_id is the authoritative owner reference used for update/delete
    checks. created_by is the owner's name at creation time, kept so events
    still render a name after the owner's account is deleted.

    id is None before the record is written to the database.
    """

    title: str
    date: datetime.date
    time: str
    location: str
    category: str
    color: str
    owner_id: int
    created_by: str
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on insert and update
