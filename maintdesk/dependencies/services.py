from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from maintdesk.core.metrics import MetricsRegistry
from maintdesk.identity.claims import IdentityClaim, Role
from maintdesk.identity.directory import UserDirectory
from maintdesk.notifications.registry import SubscriptionRegistry
from maintdesk.services.master_data import MasterDataStore
from maintdesk.services.records import IncidentRecordRepository
from maintdesk.tickets.service import TicketLifecycleService

from .auth import role_required

require_admin = role_required(Role.ADMIN)
require_planner = role_required(Role.PLANNER, Role.ADMIN)
require_worker = role_required(Role.TECHNICIAN, Role.PLANNER, Role.ADMIN)

AdminClaim = Annotated[IdentityClaim, Depends(require_admin)]
PlannerClaim = Annotated[IdentityClaim, Depends(require_planner)]
WorkerClaim = Annotated[IdentityClaim, Depends(require_worker)]


def _from_state(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return value


async def get_ticket_service(request: Request) -> TicketLifecycleService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_user_directory(request: Request) -> UserDirectory:
    return _from_state(request, "user_directory", "User directory")


async def get_record_repository(request: Request) -> IncidentRecordRepository:
    return _from_state(request, "record_repository", "Incident records")


async def get_subscription_registry(request: Request) -> SubscriptionRegistry:
    return _from_state(request, "subscription_registry", "Subscription registry")


async def get_master_data_store(request: Request) -> MasterDataStore:
    return _from_state(request, "master_data_store", "Master data")


async def get_metrics(request: Request) -> MetricsRegistry:
    return _from_state(request, "metrics", "Metrics registry")


TicketServiceDep = Annotated[TicketLifecycleService, Depends(get_ticket_service)]
UserDirectoryDep = Annotated[UserDirectory, Depends(get_user_directory)]
RecordRepositoryDep = Annotated[IncidentRecordRepository, Depends(get_record_repository)]
SubscriptionRegistryDep = Annotated[SubscriptionRegistry, Depends(get_subscription_registry)]
MasterDataDep = Annotated[MasterDataStore, Depends(get_master_data_store)]
MetricsDep = Annotated[MetricsRegistry, Depends(get_metrics)]
