import json

import pytest

from maintdesk.errors import ValidationFailedError
from maintdesk.identity.claims import Role
from maintdesk.identity.directory import ASSIGNABLE_ROLES, UserDirectory
from maintdesk.identity.passwords import hash_password, verify_password
from maintdesk.identity.tokens import resolve_role
from maintdesk.security.guard import LocationScope
from maintdesk.services.records import IncidentRecordRepository

from .support import FIXED_NOW, FakeExecutor


def _user_row(subject_id="tech-pune", role="technician", location="Pune", credential_hash=None):
    return {
        "subject_id": subject_id,
        "display_name": "Tara",
        "role": role,
        "location": location,
        "credential_hash": credential_hash,
        "email": None,
        "phone": None,
    }


@pytest.mark.asyncio
async def test_get_user_maps_row():
    executor = FakeExecutor([_user_row(credential_hash="hash")])
    user = await UserDirectory(executor).get_user("tech-pune")

    assert user is not None and user.is_registered
    sql, params = executor.calls[0]
    assert "WHERE (subject_id = $1)" in sql
    assert params == ["tech-pune"]


@pytest.mark.asyncio
async def test_get_user_unknown_returns_none():
    assert await UserDirectory(FakeExecutor([])).get_user("ghost") is None


@pytest.mark.asyncio
async def test_list_by_roles_applies_scope():
    executor = FakeExecutor([_user_row()])
    users = await UserDirectory(executor).list_by_roles(ASSIGNABLE_ROLES, scope=LocationScope("Pune"))

    sql, params = executor.calls[0]
    assert "lower(trim(role)) = ANY($1::text[])" in sql
    assert "(location = $2)" in sql
    assert params == [["technician", "planner", "admin", "tech", "administrator"], "Pune"]
    assert [user.role for user in users] == [Role.TECHNICIAN.value]


@pytest.mark.asyncio
async def test_list_by_roles_keeps_legacy_role_spellings():
    executor = FakeExecutor([_user_row(role="Technician"), _user_row(subject_id="tech-2", role="tech")])
    users = await UserDirectory(executor).list_by_roles([Role.TECHNICIAN])

    sql, params = executor.calls[0]
    assert "lower(trim(role))" in sql
    assert params == [["technician", "tech"]]
    assert [resolve_role(user.role) for user in users] == [Role.TECHNICIAN, Role.TECHNICIAN]


@pytest.mark.asyncio
async def test_set_credential_only_fills_empty_hash():
    executor = FakeExecutor([{"subject_id": "tech-pune"}], [])
    directory = UserDirectory(executor)

    assert await directory.set_credential("tech-pune", "hash") is True
    assert await directory.set_credential("tech-pune", "hash") is False
    assert "credential_hash IS NULL" in executor.calls[0][0]


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("anything", None)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_password_limit_counts_bytes_not_characters():
    with pytest.raises(ValidationFailedError):
        hash_password("é" * 40)
    hashed = hash_password("é" * 36)
    assert verify_password("é" * 36, hashed)
    assert not verify_password("é" * 40, hashed)


@pytest.mark.asyncio
async def test_incident_records_are_scoped_and_decode_details():
    executor = FakeExecutor(
        [{"id": 1, "location": "Pune", "title": "Conveyor", "details": json.dumps({"line": 3}),
          "reported_by": "tech-pune", "created_at": FIXED_NOW}],
        [],
    )
    repository = IncidentRecordRepository(executor)

    breakdowns = await repository.list_breakdowns(LocationScope("Pune"))
    safety = await repository.list_safety(LocationScope(None))

    assert breakdowns[0].kind == "breakdown"
    assert breakdowns[0].details == {"line": 3}
    assert safety == []
    assert "FROM breakdown_records" in executor.calls[0][0]
    assert executor.calls[0][1] == ["Pune"]
    assert "WHERE" not in executor.calls[1][0]
