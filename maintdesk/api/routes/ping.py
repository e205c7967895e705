from fastapi import APIRouter

from maintdesk.dependencies.services import AdminClaim, MetricsDep

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", summary="Ticket and notification counters")
async def metrics(claim: AdminClaim, registry: MetricsDep) -> dict[str, object]:
    return {"status": "ok", "metrics": registry.snapshot()}
