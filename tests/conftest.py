import pytest

from maintdesk.identity.claims import Role
from maintdesk.identity.directory import UserRecord
from maintdesk.security.guard import AuthorizationGuard

from .support import FakeUserDirectory


@pytest.fixture
def guard() -> AuthorizationGuard:
    return AuthorizationGuard("Pune")


@pytest.fixture
def users() -> FakeUserDirectory:
    return FakeUserDirectory(
        UserRecord("tech-pune", "Tara", Role.TECHNICIAN.value, "Pune"),
        UserRecord("tech-mumbai", "Milan", Role.TECHNICIAN.value, "Mumbai"),
        UserRecord("planner-pune", "Priya", Role.PLANNER.value, "Pune"),
        UserRecord("user-pune", "Uma", Role.NORMAL_USER.value, "Pune"),
    )
