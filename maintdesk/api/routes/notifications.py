from __future__ import annotations

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, ConfigDict, Field

from maintdesk.dependencies.auth import CurrentClaim
from maintdesk.dependencies.services import SubscriptionRegistryDep
from maintdesk.notifications.registry import SubscriptionEntry

router = APIRouter(prefix="/notifications", tags=["notifications"])


class PushSubscriptionRequest(BaseModel):
    """Body produced by the browser's ``PushSubscription.toJSON()``."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(..., min_length=1, max_length=2048)
    keys: dict[str, str] = Field(default_factory=dict)
    expiration_time: int | None = Field(default=None, alias="expirationTime")


@router.get("/public-key")
async def public_key(request: Request) -> dict[str, str | None]:
    return {"key": getattr(request.app.state, "vapid_public_key", None)}


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
async def subscribe(
    payload: PushSubscriptionRequest,
    registry: SubscriptionRegistryDep,
    claim: CurrentClaim,
) -> dict[str, bool]:
    entry = SubscriptionEntry(
        owner=claim.subject_id,
        endpoint=payload.endpoint,
        keys=payload.keys,
        expiration_time=payload.expiration_time,
    )
    created = registry.register(claim.subject_id, entry)
    return {"success": True, "created": created}
