from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from maintdesk.errors import ValidationFailedError

from .state import TicketStatus


class TicketCategory(str, Enum):
    FACILITY_SERVICE = "Facility Service"
    BREAKDOWN = "Breakdown"
    SAFETY = "Safety"
    OTHER = "Other"


_CATEGORY_ALIASES: dict[str, TicketCategory] = {
    "facility": TicketCategory.FACILITY_SERVICE,
    "facility service": TicketCategory.FACILITY_SERVICE,
    "facilityservice": TicketCategory.FACILITY_SERVICE,
    "breakdown": TicketCategory.BREAKDOWN,
    "safety": TicketCategory.SAFETY,
    "other": TicketCategory.OTHER,
}


def normalize_category(value: Any) -> TicketCategory:
    """Coerce user input to a category; anything unrecognised becomes ``Other``."""
    if isinstance(value, TicketCategory):
        return value
    key = str(value or "").strip().lower()
    return _CATEGORY_ALIASES.get(key, TicketCategory.OTHER)


FACILITY_FIELDS = ("building_no", "area_code", "sub_area", "keyword")


@dataclass(slots=True)
class TicketDraft:
    """Fields submitted by a raiser before the store assigns an id."""

    category: TicketCategory = TicketCategory.OTHER
    description: str | None = None
    building_no: str | None = None
    area_code: str | None = None
    sub_area: str | None = None
    keyword: str | None = None

    @classmethod
    def from_input(cls, *, category: Any = None, **fields: str | None) -> "TicketDraft":
        cleaned = {name: _clean(value) for name, value in fields.items()}
        return cls(category=normalize_category(category), **cleaned)

    def validate(self) -> None:
        if self.category is not TicketCategory.FACILITY_SERVICE:
            return
        missing = [name for name in FACILITY_FIELDS if not getattr(self, name)]
        if missing:
            raise ValidationFailedError(f"Missing required Facility Service fields: {', '.join(missing)}")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(slots=True)
class Ticket:
    """A maintenance ticket as persisted."""

    id: int
    raised_by: str
    raised_by_name: str | None
    category: TicketCategory
    description: str | None
    building_no: str | None
    area_code: str | None
    sub_area: str | None
    keyword: str | None
    location: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    assigned_to: str | None = None
    planner_id: str | None = None
    completion_note: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def involves(self, subject_id: str) -> bool:
        return subject_id in (self.raised_by, self.assigned_to)


@dataclass(slots=True)
class TicketSummary:
    total: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    category_counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_tickets(cls, tickets: list[Ticket]) -> "TicketSummary":
        summary = cls(total=len(tickets))
        for ticket in tickets:
            summary.status_counts[ticket.status.value] = summary.status_counts.get(ticket.status.value, 0) + 1
            summary.category_counts[ticket.category.value] = summary.category_counts.get(ticket.category.value, 0) + 1
        return summary
