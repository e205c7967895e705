from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from opentelemetry import trace

from maintdesk.core.metrics import TICKET_TRANSITIONS, MetricsRegistry, register_default_metrics
from maintdesk.errors import InvalidTicketTransitionError, TicketNotFoundError, ValidationFailedError
from maintdesk.identity.claims import IdentityClaim, Role
from maintdesk.identity.directory import ASSIGNABLE_ROLES, UserDirectory
from maintdesk.identity.tokens import resolve_role
from maintdesk.notifications.dispatcher import NotificationMessage
from maintdesk.security.guard import AuthorizationGuard, LocationScope

from .models import Ticket, TicketDraft, TicketSummary
from .repository import TicketRepository
from .state import TicketStateMachine, TicketStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SUBMIT_ROLES = frozenset({Role.NORMAL_USER, Role.TECHNICIAN, Role.PLANNER, Role.ADMIN})
ASSIGN_ROLES = frozenset({Role.PLANNER, Role.ADMIN})
WORK_ROLES = frozenset({Role.TECHNICIAN, Role.PLANNER, Role.ADMIN})
# Roles that see every ticket of their location, not only the ones they take part in.
LOCATION_WIDE_ROLES = frozenset({Role.PLANNER, Role.ADMIN})


class NotificationScheduler(Protocol):
    def schedule(self, target: str, message: NotificationMessage) -> object:
        ...


class TicketLifecycleService:
    """Guarded ticket transitions followed by a detached notification.

    The service keeps no ticket state between calls: each transition authorizes the
    caller's role, re-reads the ticket inside the caller's location scope, checks the state
    machine, then issues one conditional update. Tickets outside the scope are reported as
    missing, never as forbidden.
    """

    def __init__(
        self,
        repository: TicketRepository,
        users: UserDirectory,
        guard: AuthorizationGuard,
        notifier: NotificationScheduler,
        *,
        state_machine: type[TicketStateMachine] = TicketStateMachine,
        metrics: MetricsRegistry | None = None,
        notification_title: str = "Ticket Update",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._users = users
        self._guard = guard
        self._notifier = notifier
        self._state_machine = state_machine
        self._metrics = register_default_metrics(metrics or MetricsRegistry())
        self._title = notification_title
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def ensure_schema(self) -> None:
        await self._repository.ensure_schema()
        await self._users.ensure_schema()

    async def submit(self, claim: IdentityClaim | None, draft: TicketDraft) -> Ticket:
        claim = self._guard.authorize(claim, SUBMIT_ROLES)
        draft.validate()

        with tracer.start_as_current_span("tickets.submit"):
            ticket = await self._repository.insert_ticket(
                draft,
                raised_by=claim.subject_id,
                raised_by_name=claim.display_name or None,
                location=claim.location,
                status=self._state_machine.initial_state(),
                now=self._clock(),
            )

        self._record("submit", ticket, claim)
        self._notify(ticket.raised_by, "Your ticket has been submitted successfully.", ticket)
        return ticket

    async def assign(self, claim: IdentityClaim | None, ticket_id: int, assignee_id: str) -> Ticket:
        claim = self._guard.authorize(claim, ASSIGN_ROLES)
        scope = self._guard.scope_for(claim)

        with tracer.start_as_current_span("tickets.assign") as span:
            span.set_attribute("ticket.id", ticket_id)
            current = await self._load(ticket_id, scope)
            self._check_transition(current, TicketStatus.ASSIGNED)
            await self._check_assignee(assignee_id, scope)
            updated = await self._repository.assign_ticket(
                ticket_id,
                assignee=assignee_id,
                planner=claim.subject_id,
                expected=current.status,
                scope=scope,
                now=self._clock(),
            )
        ticket = self._require_updated(updated, ticket_id)

        self._record("assign", ticket, claim)
        self._notify(assignee_id, f"Ticket ID {ticket.id} has been assigned to you.", ticket)
        return ticket

    async def start(self, claim: IdentityClaim | None, ticket_id: int) -> Ticket:
        claim = self._guard.authorize(claim, WORK_ROLES)
        scope = self._guard.scope_for(claim)

        with tracer.start_as_current_span("tickets.start") as span:
            span.set_attribute("ticket.id", ticket_id)
            current = await self._load(ticket_id, scope)
            self._check_transition(current, TicketStatus.IN_PROGRESS)
            updated = await self._repository.start_ticket(
                ticket_id, expected=current.status, scope=scope, now=self._clock()
            )
        ticket = self._require_updated(updated, ticket_id)

        self._record("start", ticket, claim)
        self._notify(ticket.raised_by, f"Your ticket #{ticket.id} has been started by the technician.", ticket)
        return ticket

    async def complete(self, claim: IdentityClaim | None, ticket_id: int, note: str | None = None) -> Ticket:
        claim = self._guard.authorize(claim, WORK_ROLES)
        scope = self._guard.scope_for(claim)

        with tracer.start_as_current_span("tickets.complete") as span:
            span.set_attribute("ticket.id", ticket_id)
            current = await self._load(ticket_id, scope)
            self._check_transition(current, TicketStatus.COMPLETED)
            updated = await self._repository.complete_ticket(
                ticket_id,
                note=(note or "").strip() or None,
                expected=current.status,
                scope=scope,
                now=self._clock(),
            )
        ticket = self._require_updated(updated, ticket_id)

        self._record("complete", ticket, claim)
        self._notify(ticket.raised_by, f"Your ticket #{ticket.id} has been completed by the technician.", ticket)
        return ticket

    async def get_ticket(self, claim: IdentityClaim | None, ticket_id: int) -> Ticket:
        claim = self._guard.authorize(claim, SUBMIT_ROLES)
        ticket = await self._repository.get_ticket(ticket_id, scope=self._guard.scope_for(claim))
        if ticket is None or not self._is_visible(claim, ticket):
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(self, claim: IdentityClaim | None, *, status: TicketStatus | None = None) -> list[Ticket]:
        """Every ticket the caller is allowed to see."""
        claim = self._guard.authorize(claim, SUBMIT_ROLES)
        participant = None if claim.role in LOCATION_WIDE_ROLES else claim.subject_id
        return await self._repository.list_tickets(
            scope=self._guard.scope_for(claim), participant=participant, status=status
        )

    async def list_own_tickets(self, claim: IdentityClaim | None) -> list[Ticket]:
        claim = self._guard.authorize(claim, SUBMIT_ROLES)
        return await self._repository.list_tickets(
            scope=LocationScope(location=claim.location), participant=claim.subject_id
        )

    async def list_assigned_tickets(self, claim: IdentityClaim | None) -> list[Ticket]:
        claim = self._guard.authorize(claim, WORK_ROLES)
        return await self._repository.list_tickets(
            scope=self._guard.scope_for(claim), assigned_to=claim.subject_id
        )

    async def summarize(self, claim: IdentityClaim | None) -> TicketSummary:
        return TicketSummary.from_tickets(await self.list_tickets(claim))

    def _is_visible(self, claim: IdentityClaim, ticket: Ticket) -> bool:
        if self._guard.is_headquarters_admin(claim):
            return True
        if ticket.location != claim.location:
            return False
        return claim.role in LOCATION_WIDE_ROLES or ticket.involves(claim.subject_id)

    async def _load(self, ticket_id: int, scope: LocationScope) -> Ticket:
        ticket = await self._repository.get_ticket(ticket_id, scope=scope)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    def _check_transition(self, ticket: Ticket, target: TicketStatus) -> None:
        try:
            self._state_machine.assert_transition(ticket.status, target)
        except ValueError as exc:
            raise InvalidTicketTransitionError(
                f"Ticket {ticket.id} is {ticket.status.value} and cannot move to {target.value}"
            ) from exc

    async def _check_assignee(self, assignee_id: str, scope: LocationScope) -> None:
        if not assignee_id:
            raise ValidationFailedError("An assignee is required")
        user = await self._users.get_user(assignee_id)
        try:
            role = resolve_role(user.role) if user is not None else None
        except ValueError:
            role = None
        if user is None or role not in ASSIGNABLE_ROLES or not scope.allows(user.location):
            raise ValidationFailedError(f"{assignee_id} is not an available technician")

    @staticmethod
    def _require_updated(ticket: Ticket | None, ticket_id: int) -> Ticket:
        # Zero rows: the ticket changed underneath us or left the caller's scope.
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    def _record(self, transition: str, ticket: Ticket, claim: IdentityClaim) -> None:
        self._metrics.counter(TICKET_TRANSITIONS, label_names=("transition",)).inc(labels={"transition": transition})
        logger.info(
            "Ticket %s %s by %s (%s) -> %s",
            ticket.id,
            transition,
            claim.subject_id,
            claim.role.value,
            ticket.status.value,
        )

    def _notify(self, target: str | None, body: str, ticket: Ticket) -> None:
        if not target:
            return
        message = NotificationMessage(title=self._title, body=body, ticket_id=ticket.id)
        try:
            self._notifier.schedule(target, message)
        except Exception:
            logger.exception("Could not schedule notification for ticket %s", ticket.id)
