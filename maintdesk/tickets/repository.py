from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from maintdesk.errors import PersistenceError
from maintdesk.security.guard import GLOBAL_SCOPE, LocationScope
from maintdesk.services.postgres import QueryExecutor, run_query
from maintdesk.services.query import ScopedQuery

from .models import Ticket, TicketCategory, TicketDraft
from .state import TicketStatus


class TicketRepository:
    """Data access layer for ticket records.

    Every read and write takes a :class:`LocationScope`; transitions are single conditional
    ``UPDATE ... RETURNING`` statements that match id, expected status and scope, so a row
    that moved on or lies outside the scope yields ``None``.
    """

    _CREATE_TICKETS_SQL = """
    CREATE TABLE IF NOT EXISTS tickets (
        id BIGSERIAL PRIMARY KEY,
        raised_by TEXT NOT NULL,
        raised_by_name TEXT NULL,
        category TEXT NOT NULL DEFAULT 'Other',
        description TEXT NULL,
        building_no TEXT NULL,
        area_code TEXT NULL,
        sub_area TEXT NULL,
        keyword TEXT NULL,
        location TEXT NOT NULL,
        status TEXT NOT NULL,
        assigned_to TEXT NULL,
        planner_id TEXT NULL,
        completion_note TEXT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL,
        started_at TIMESTAMPTZ NULL,
        completed_at TIMESTAMPTZ NULL
    )
    """

    _CREATE_LOCATION_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS tickets_location_created_idx ON tickets (location, created_at DESC)
    """

    _COLUMNS = (
        "id, raised_by, raised_by_name, category, description, building_no, area_code, sub_area, keyword, "
        "location, status, assigned_to, planner_id, completion_note, created_at, updated_at, started_at, completed_at"
    )

    _INSERT_TICKET_SQL = f"""
    INSERT INTO tickets
        (raised_by, raised_by_name, category, description, building_no, area_code, sub_area, keyword,
         location, status, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    RETURNING {_COLUMNS}
    """

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def ensure_schema(self) -> None:
        await self._executor.execute(self._CREATE_TICKETS_SQL)
        await self._executor.execute(self._CREATE_LOCATION_INDEX_SQL)

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
        rows = await run_query(
            self._executor,
            ScopedQuery(
                self._INSERT_TICKET_SQL,
                (
                    raised_by,
                    raised_by_name,
                    draft.category.value,
                    draft.description,
                    draft.building_no,
                    draft.area_code,
                    draft.sub_area,
                    draft.keyword,
                    location,
                    status.value,
                    now,
                    now,
                ),
            ),
        )
        if not rows:
            raise PersistenceError("The ticket store did not return the inserted ticket")
        return self._row_to_ticket(rows[0])

    async def get_ticket(self, ticket_id: int, *, scope: LocationScope = GLOBAL_SCOPE) -> Ticket | None:
        query = scope.apply(self._select().where("id = ?", ticket_id))
        rows = await run_query(self._executor, query)
        if not rows:
            return None
        return self._row_to_ticket(rows[0])

    async def list_tickets(
        self,
        *,
        scope: LocationScope = GLOBAL_SCOPE,
        participant: str | None = None,
        assigned_to: str | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        """List tickets newest first.

        ``participant`` keeps tickets raised by or assigned to that subject; ``assigned_to``
        keeps only tickets assigned to it.
        """
        query = self._select()
        if participant is not None:
            query = query.where("raised_by = ? OR assigned_to = ?", participant, participant)
        if assigned_to is not None:
            query = query.where("assigned_to = ?", assigned_to)
        if status is not None:
            query = query.where("status = ?", status.value)
        query = scope.apply(query).with_suffix("ORDER BY created_at DESC, id DESC")
        rows = await run_query(self._executor, query)
        return [self._row_to_ticket(row) for row in rows]

    async def assign_ticket(
        self,
        ticket_id: int,
        *,
        assignee: str,
        planner: str,
        expected: TicketStatus,
        scope: LocationScope,
        now: datetime,
    ) -> Ticket | None:
        update = ScopedQuery(
            "UPDATE tickets SET assigned_to = ?, planner_id = ?, status = ?, updated_at = ?",
            (assignee, planner, TicketStatus.ASSIGNED.value, now),
        )
        return await self._transition(update, ticket_id, expected=expected, scope=scope)

    async def start_ticket(
        self,
        ticket_id: int,
        *,
        expected: TicketStatus,
        scope: LocationScope,
        now: datetime,
    ) -> Ticket | None:
        update = ScopedQuery(
            "UPDATE tickets SET status = ?, started_at = ?, updated_at = ?",
            (TicketStatus.IN_PROGRESS.value, now, now),
        )
        return await self._transition(update, ticket_id, expected=expected, scope=scope)

    async def complete_ticket(
        self,
        ticket_id: int,
        *,
        note: str | None,
        expected: TicketStatus,
        scope: LocationScope,
        now: datetime,
    ) -> Ticket | None:
        update = ScopedQuery(
            "UPDATE tickets SET status = ?, completion_note = ?, completed_at = ?, updated_at = ?",
            (TicketStatus.COMPLETED.value, note, now, now),
        )
        return await self._transition(update, ticket_id, expected=expected, scope=scope)

    async def _transition(
        self,
        update: ScopedQuery,
        ticket_id: int,
        *,
        expected: TicketStatus,
        scope: LocationScope,
    ) -> Ticket | None:
        query = (
            scope.apply(update.where("id = ?", ticket_id).where("status = ?", expected.value))
            .with_suffix(f"RETURNING {self._COLUMNS}")
        )
        rows = await run_query(self._executor, query)
        if not rows:
            return None
        return self._row_to_ticket(rows[0])

    def _select(self) -> ScopedQuery:
        return ScopedQuery(f"SELECT {self._COLUMNS} FROM tickets")

    @staticmethod
    def _row_to_ticket(row: Mapping[str, Any]) -> Ticket:
        return Ticket(
            id=int(row["id"]),
            raised_by=str(row["raised_by"]),
            raised_by_name=row.get("raised_by_name"),
            category=TicketCategory(str(row.get("category") or TicketCategory.OTHER.value)),
            description=row.get("description"),
            building_no=row.get("building_no"),
            area_code=row.get("area_code"),
            sub_area=row.get("sub_area"),
            keyword=row.get("keyword"),
            location=str(row["location"]),
            status=TicketStatus(str(row["status"])),
            assigned_to=row.get("assigned_to"),
            planner_id=row.get("planner_id"),
            completion_note=row.get("completion_note"),
            created_at=_ensure_datetime(row["created_at"]),
            updated_at=_ensure_datetime(row["updated_at"]),
            started_at=_optional_datetime(row.get("started_at")),
            completed_at=_optional_datetime(row.get("completed_at")),
        )


def _ensure_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.fromisoformat(str(value))


def _optional_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    return _ensure_datetime(value)
