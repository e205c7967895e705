from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from maintdesk.dependencies.services import AdminClaim, MasterDataDep

router = APIRouter(prefix="/master-data", tags=["master-data"])


class MasterDataUpdate(BaseModel):
    location: str = Field(..., min_length=1, max_length=100)
    data: dict[str, Any]


@router.get("")
async def get_master_data(claim: AdminClaim, store: MasterDataDep) -> dict[str, Any]:
    """Reference data for the caller's own location."""
    return await store.get_for_location(claim.location)


@router.put("")
async def update_master_data(payload: MasterDataUpdate, claim: AdminClaim, store: MasterDataDep) -> dict[str, bool]:
    await store.update_for_location(claim.location, payload.location, payload.data)
    return {"success": True}
