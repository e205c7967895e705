from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

from maintdesk.identity.claims import IdentityClaim, Role
from maintdesk.identity.directory import UserRecord
from maintdesk.identity.tokens import stored_role_values
from maintdesk.security.guard import GLOBAL_SCOPE, LocationScope
from maintdesk.tickets.models import Ticket, TicketDraft
from maintdesk.tickets.state import TicketStatus

FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def make_claim(subject_id: str, role: Role, location: str = "Pune", name: str | None = None) -> IdentityClaim:
    return IdentityClaim(
        subject_id=subject_id,
        display_name=name or subject_id.title(),
        role=role,
        location=location,
        issued_at=FIXED_NOW,
        expires_at=FIXED_NOW + timedelta(days=7),
    )


class FakeExecutor:
    """Records every statement and answers with queued row lists."""

    def __init__(self, *results: list[dict[str, Any]]) -> None:
        self.calls: list[tuple[str, list[Any]]] = []
        self._results = list(results)

    async def execute(self, query: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        self.calls.append((query, list(params)))
        if self._results:
            return self._results.pop(0)
        return []


class FakeTicketRepository:
    """In-memory ticket store honouring scope and expected-status conditions."""

    def __init__(self) -> None:
        self.tickets: dict[int, Ticket] = {}
        self._next_id = 1
        self.schema_ensured = False

    async def ensure_schema(self) -> None:
        self.schema_ensured = True

    async def insert_ticket(
        self,
        draft: TicketDraft,
        *,
        raised_by: str,
        raised_by_name: str | None,
        location: str,
        status: TicketStatus,
        now: datetime,
    ) -> Ticket:
        ticket = Ticket(
            id=self._next_id,
            raised_by=raised_by,
            raised_by_name=raised_by_name,
            category=draft.category,
            description=draft.description,
            building_no=draft.building_no,
            area_code=draft.area_code,
            sub_area=draft.sub_area,
            keyword=draft.keyword,
            location=location,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.tickets[ticket.id] = ticket
        self._next_id += 1
        return ticket

    async def get_ticket(self, ticket_id: int, *, scope: LocationScope = GLOBAL_SCOPE) -> Ticket | None:
        ticket = self.tickets.get(ticket_id)
        if ticket is None or not scope.allows(ticket.location):
            return None
        return ticket

    async def list_tickets(
        self,
        *,
        scope: LocationScope = GLOBAL_SCOPE,
        participant: str | None = None,
        assigned_to: str | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        result = [
            ticket
            for ticket in self.tickets.values()
            if scope.allows(ticket.location)
            and (participant is None or ticket.involves(participant))
            and (assigned_to is None or ticket.assigned_to == assigned_to)
            and (status is None or ticket.status == status)
        ]
        return sorted(result, key=lambda ticket: ticket.id, reverse=True)

    def _match(self, ticket_id: int, expected: TicketStatus, scope: LocationScope) -> Ticket | None:
        ticket = self.tickets.get(ticket_id)
        if ticket is None or ticket.status != expected or not scope.allows(ticket.location):
            return None
        return ticket

    async def assign_ticket(self, ticket_id, *, assignee, planner, expected, scope, now) -> Ticket | None:
        ticket = self._match(ticket_id, expected, scope)
        if ticket is None:
            return None
        updated = replace(
            ticket, assigned_to=assignee, planner_id=planner, status=TicketStatus.ASSIGNED, updated_at=now
        )
        self.tickets[ticket_id] = updated
        return updated

    async def start_ticket(self, ticket_id, *, expected, scope, now) -> Ticket | None:
        ticket = self._match(ticket_id, expected, scope)
        if ticket is None:
            return None
        updated = replace(ticket, status=TicketStatus.IN_PROGRESS, started_at=now, updated_at=now)
        self.tickets[ticket_id] = updated
        return updated

    async def complete_ticket(self, ticket_id, *, note, expected, scope, now) -> Ticket | None:
        ticket = self._match(ticket_id, expected, scope)
        if ticket is None:
            return None
        updated = replace(
            ticket, status=TicketStatus.COMPLETED, completion_note=note, completed_at=now, updated_at=now
        )
        self.tickets[ticket_id] = updated
        return updated


class FakeUserDirectory:
    def __init__(self, *users: UserRecord) -> None:
        self.users = {user.subject_id: user for user in users}
        self.schema_ensured = False

    async def ensure_schema(self) -> None:
        self.schema_ensured = True

    async def get_user(self, subject_id: str) -> UserRecord | None:
        return self.users.get(subject_id)

    async def list_by_roles(self, roles, *, scope: LocationScope | None = None) -> list[UserRecord]:
        values = set(stored_role_values(roles))
        return [
            user
            for user in self.users.values()
            if user.role.strip().lower() in values and (scope is None or scope.allows(user.location))
        ]

    async def set_credential(self, subject_id: str, credential_hash: str) -> bool:
        user = self.users.get(subject_id)
        if user is None or user.credential_hash:
            return False
        self.users[subject_id] = replace(user, credential_hash=credential_hash)
        return True


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, Any]] = []

    def schedule(self, target, message):
        self.sent.append((target, message))
        return None

    def targets(self) -> list[str]:
        return [target for target, _ in self.sent]
