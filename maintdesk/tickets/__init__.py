"""Ticket domain models, lifecycle state machine and services."""

from .models import Ticket, TicketCategory, TicketDraft, TicketSummary, normalize_category
from .repository import TicketRepository
from .service import TicketLifecycleService
from .state import TicketStateMachine, TicketStatus

__all__ = [
    "Ticket",
    "TicketCategory",
    "TicketDraft",
    "TicketLifecycleService",
    "TicketRepository",
    "TicketStateMachine",
    "TicketStatus",
    "TicketSummary",
    "normalize_category",
]
