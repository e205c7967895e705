from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from maintdesk.security.guard import LocationScope

from .postgres import QueryExecutor, run_query
from .query import ScopedQuery


@dataclass(slots=True)
class IncidentRecord:
    """Breakdown or safety report, listed alongside tickets on the admin dashboard."""

    id: int
    kind: str
    location: str
    title: str | None
    details: dict[str, Any] = field(default_factory=dict)
    reported_by: str | None = None
    created_at: datetime | None = None


class IncidentRecordRepository:
    """Read-only access to the ``breakdown_records`` and ``safety_records`` tables."""

    TABLES = {"breakdown": "breakdown_records", "safety": "safety_records"}

    _CREATE_SQL = """
    CREATE TABLE IF NOT EXISTS {table} (
        id BIGSERIAL PRIMARY KEY,
        location TEXT NOT NULL,
        title TEXT NULL,
        details JSONB NOT NULL DEFAULT '{{}}'::jsonb,
        reported_by TEXT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def ensure_schema(self) -> None:
        for table in self.TABLES.values():
            await self._executor.execute(self._CREATE_SQL.format(table=table))

    async def list_breakdowns(self, scope: LocationScope) -> list[IncidentRecord]:
        return await self._list("breakdown", scope)

    async def list_safety(self, scope: LocationScope) -> list[IncidentRecord]:
        return await self._list("safety", scope)

    async def _list(self, kind: str, scope: LocationScope) -> list[IncidentRecord]:
        query = ScopedQuery(
            f"SELECT id, location, title, details, reported_by, created_at FROM {self.TABLES[kind]}"
        )
        query = scope.apply(query).with_suffix("ORDER BY created_at DESC")
        rows = await run_query(self._executor, query)
        return [self._row_to_record(kind, row) for row in rows]

    @staticmethod
    def _row_to_record(kind: str, row: Mapping[str, Any]) -> IncidentRecord:
        details = row.get("details") or {}
        if isinstance(details, str):
            # asyncpg hands back JSONB as text unless a codec is registered
            details = json.loads(details)
        return IncidentRecord(
            id=int(row["id"]),
            kind=kind,
            location=str(row["location"]),
            title=row.get("title"),
            details=dict(details) if isinstance(details, Mapping) else {"raw": details},
            reported_by=row.get("reported_by"),
            created_at=row.get("created_at"),
        )
