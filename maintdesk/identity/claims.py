from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Roles a caller may hold."""

    NORMAL_USER = "normal_user"
    TECHNICIAN = "technician"
    PLANNER = "planner"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class IdentityClaim:
    """Verified identity of a caller, decoded from a signed token."""

    subject_id: str
    display_name: str
    role: Role
    location: str
    issued_at: datetime
    expires_at: datetime
