from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from maintdesk.services.postgres import QueryExecutor, run_query
from maintdesk.services.query import ScopedQuery

from .claims import Role
from .tokens import stored_role_values

if TYPE_CHECKING:
    from maintdesk.security.guard import LocationScope


@dataclass(slots=True)
class UserRecord:
    """Row of the ``users`` table; ``role`` is kept as stored (may be a legacy alias)."""

    subject_id: str
    display_name: str
    role: str
    location: str
    credential_hash: str | None = None
    email: str | None = None
    phone: str | None = None

    @property
    def is_registered(self) -> bool:
        return bool(self.credential_hash)


ASSIGNABLE_ROLES: tuple[Role, ...] = (Role.TECHNICIAN, Role.PLANNER, Role.ADMIN)


class UserDirectory:
    """Read access to the identity store plus credential enrolment."""

    _CREATE_USERS_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        subject_id TEXT PRIMARY KEY,
        display_name TEXT NOT NULL,
        role TEXT NOT NULL,
        location TEXT NOT NULL,
        credential_hash TEXT NULL,
        email TEXT NULL,
        phone TEXT NULL
    )
    """

    _COLUMNS = "subject_id, display_name, role, location, credential_hash, email, phone"

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def ensure_schema(self) -> None:
        await self._executor.execute(self._CREATE_USERS_SQL)

    async def get_user(self, subject_id: str) -> UserRecord | None:
        rows = await run_query(
            self._executor,
            ScopedQuery(f"SELECT {self._COLUMNS} FROM users").where("subject_id = ?", subject_id),
        )
        if not rows:
            return None
        return self._row_to_user(rows[0])

    async def list_by_roles(
        self,
        roles: Sequence[Role],
        *,
        scope: LocationScope | None = None,
    ) -> list[UserRecord]:
        """List users holding any of ``roles``, restricted to ``scope`` when given."""
        # Stored roles may differ in case or use a legacy alias.
        query = ScopedQuery(f"SELECT {self._COLUMNS} FROM users").where(
            "lower(trim(role)) = ANY(?::text[])", stored_role_values(roles)
        )
        if scope is not None:
            query = scope.apply(query, "location")
        rows = await run_query(self._executor, query.with_suffix("ORDER BY display_name"))
        return [self._row_to_user(row) for row in rows]

    async def set_credential(self, subject_id: str, credential_hash: str) -> bool:
        """Store a credential for a user that has none yet; returns whether a row changed."""
        query = (
            ScopedQuery("UPDATE users SET credential_hash = ?", (credential_hash,))
            .where("subject_id = ?", subject_id)
            .where("credential_hash IS NULL")
            .with_suffix("RETURNING subject_id")
        )
        rows = await run_query(self._executor, query)
        return bool(rows)

    @staticmethod
    def _row_to_user(row: Mapping[str, Any]) -> UserRecord:
        return UserRecord(
            subject_id=str(row["subject_id"]),
            display_name=str(row.get("display_name") or ""),
            role=str(row["role"]),
            location=str(row["location"]),
            credential_hash=row.get("credential_hash"),
            email=row.get("email"),
            phone=row.get("phone"),
        )
