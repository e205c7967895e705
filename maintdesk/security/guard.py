"""Role checks and location scoping applied to every request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from maintdesk.errors import ForbiddenError, UnauthenticatedError
from maintdesk.identity.claims import IdentityClaim, Role
from maintdesk.services.query import ScopedQuery


@dataclass(frozen=True, slots=True)
class LocationScope:
    """Location restriction for a caller; ``location=None`` means global visibility."""

    location: str | None

    @property
    def is_global(self) -> bool:
        return self.location is None

    def allows(self, location: str | None) -> bool:
        return self.is_global or location == self.location

    def apply(self, query: ScopedQuery, column: str = "location") -> ScopedQuery:
        if self.is_global:
            return query
        return query.where(f"{column} = ?", self.location)


GLOBAL_SCOPE = LocationScope(location=None)


class AuthorizationGuard:
    """Stateless permit/deny decisions plus the headquarters-admin override."""

    def __init__(self, headquarters_location: str) -> None:
        self.headquarters_location = headquarters_location

    def authorize(self, claim: IdentityClaim | None, required_roles: Iterable[Role]) -> IdentityClaim:
        if claim is None:
            raise UnauthenticatedError("Authentication required")
        roles = frozenset(required_roles)
        if claim.role not in roles:
            raise ForbiddenError("Access denied: insufficient role")
        return claim

    def is_headquarters_admin(self, claim: IdentityClaim) -> bool:
        return claim.role is Role.ADMIN and claim.location == self.headquarters_location

    def scope_for(self, claim: IdentityClaim) -> LocationScope:
        if self.is_headquarters_admin(claim):
            return GLOBAL_SCOPE
        return LocationScope(location=claim.location)

    def scope_to_location(self, claim: IdentityClaim, query: ScopedQuery, column: str = "location") -> ScopedQuery:
        return self.scope_for(claim).apply(query, column)
