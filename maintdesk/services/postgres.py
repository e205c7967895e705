from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

import asyncpg

from maintdesk.errors import PersistenceError

from .query import ScopedQuery

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


class QueryExecutor(Protocol):
    async def execute(self, query: str, params: Sequence[Any] = ()) -> list[Row]:
        ...


async def run_query(executor: QueryExecutor, query: ScopedQuery) -> list[Row]:
    sql, params = query.render()
    return await executor.execute(sql, params)


@dataclass(slots=True)
class PostgresExecutor:
    """Single entry point to PostgreSQL: positional-parameter queries returning rows."""

    dsn: str
    min_size: int = 1
    max_size: int = 10
    command_timeout: float = 30.0
    _pool: asyncpg.Pool | None = None

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
            )
        return self._pool

    async def execute(self, query: str, params: Sequence[Any] = ()) -> list[Row]:
        try:
            pool = await self.get_pool()
            async with pool.acquire() as connection:
                records = await connection.fetch(query, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
            logger.error("Query failed: %s", exc)
            raise PersistenceError("The ticket store is unavailable") from exc
        return [dict(record) for record in records]

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
