from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "Open"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    The lifecycle is linear. Re-assigning an already assigned ticket is the only
    self-transition; nothing moves backwards and ``Completed`` is terminal.
    """

    _TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.OPEN: frozenset({TicketStatus.ASSIGNED}),
        TicketStatus.ASSIGNED: frozenset({TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS}),
        TicketStatus.IN_PROGRESS: frozenset({TicketStatus.COMPLETED}),
        TicketStatus.COMPLETED: frozenset(),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._TRANSITIONS.get(current, frozenset())

    @classmethod
    def sources_for(cls, new: TicketStatus) -> tuple[TicketStatus, ...]:
        """States from which ``new`` can be reached, in lifecycle order."""
        return tuple(status for status in TicketStatus if new in cls._TRANSITIONS[status])

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise ValueError(f"Invalid ticket status transition: {current.value} -> {new.value}")
