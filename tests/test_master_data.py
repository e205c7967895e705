import json

import pytest

from maintdesk.errors import ForbiddenError
from maintdesk.services.master_data import MasterDataStore


@pytest.mark.asyncio
async def test_missing_file_reads_as_empty(tmp_path):
    store = MasterDataStore(tmp_path / "missing.json")
    assert await store.get_for_location("Pune") == {}


@pytest.mark.asyncio
async def test_location_lookup_ignores_case(tmp_path):
    path = tmp_path / "master.json"
    path.write_text(json.dumps({"PUNE": {"buildings": ["B1", "B2"]}}), encoding="utf-8")
    store = MasterDataStore(path)

    assert await store.get_for_location("pune") == {"buildings": ["B1", "B2"]}


@pytest.mark.asyncio
async def test_update_replaces_existing_key_and_keeps_others(tmp_path):
    path = tmp_path / "master.json"
    path.write_text(json.dumps({"Pune": {"buildings": ["B1"]}, "Mumbai": {"buildings": ["M1"]}}), encoding="utf-8")
    store = MasterDataStore(path)

    await store.update_for_location("pune", "PUNE", {"buildings": ["B9"]})

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document == {"Pune": {"buildings": ["B9"]}, "Mumbai": {"buildings": ["M1"]}}


@pytest.mark.asyncio
async def test_update_for_other_location_is_forbidden(tmp_path):
    store = MasterDataStore(tmp_path / "master.json")
    with pytest.raises(ForbiddenError):
        await store.update_for_location("Pune", "Mumbai", {})
    assert not (tmp_path / "master.json").exists()


@pytest.mark.asyncio
async def test_invalid_json_reads_as_empty(tmp_path):
    path = tmp_path / "master.json"
    path.write_text("{not json", encoding="utf-8")
    assert await MasterDataStore(path).get_for_location("Pune") == {}
