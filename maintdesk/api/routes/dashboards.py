"""JSON payloads backing the four role dashboards."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from maintdesk.dependencies.auth import CurrentClaim, Guard
from maintdesk.dependencies.services import (
    AdminClaim,
    PlannerClaim,
    RecordRepositoryDep,
    TicketServiceDep,
    UserDirectoryDep,
    WorkerClaim,
)
from maintdesk.identity.directory import ASSIGNABLE_ROLES
from maintdesk.tickets.models import TicketSummary

from .tickets import TicketResponse, to_response

router = APIRouter(prefix="/dashboard", tags=["dashboards"])


class TechnicianOption(BaseModel):
    subject_id: str
    display_name: str
    role: str
    location: str


class IncidentRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    location: str
    title: str | None
    details: dict[str, Any]
    reported_by: str | None
    created_at: datetime | None


class TicketSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    status_counts: dict[str, int]
    category_counts: dict[str, int]


class UserDashboard(BaseModel):
    display_name: str
    location: str
    tickets: list[TicketResponse]


class TechnicianDashboard(UserDashboard):
    pass


class PlannerDashboard(UserDashboard):
    technicians: list[TechnicianOption]


class AdminDashboard(UserDashboard):
    summary: TicketSummaryResponse
    breakdown_records: list[IncidentRecordResponse]
    safety_records: list[IncidentRecordResponse]


@router.get("/user", response_model=UserDashboard)
async def user_dashboard(claim: CurrentClaim, service: TicketServiceDep) -> UserDashboard:
    tickets = await service.list_own_tickets(claim)
    return UserDashboard(
        display_name=claim.display_name,
        location=claim.location,
        tickets=[to_response(ticket) for ticket in tickets],
    )


@router.get("/technician", response_model=TechnicianDashboard)
async def technician_dashboard(claim: WorkerClaim, service: TicketServiceDep) -> TechnicianDashboard:
    tickets = await service.list_assigned_tickets(claim)
    return TechnicianDashboard(
        display_name=claim.display_name,
        location=claim.location,
        tickets=[to_response(ticket) for ticket in tickets],
    )


@router.get("/planner", response_model=PlannerDashboard)
async def planner_dashboard(
    claim: PlannerClaim,
    service: TicketServiceDep,
    users: UserDirectoryDep,
    guard: Guard,
) -> PlannerDashboard:
    tickets = await service.list_tickets(claim)
    technicians = await users.list_by_roles(ASSIGNABLE_ROLES, scope=guard.scope_for(claim))
    return PlannerDashboard(
        display_name=claim.display_name,
        location=claim.location,
        tickets=[to_response(ticket) for ticket in tickets],
        technicians=[
            TechnicianOption(
                subject_id=user.subject_id,
                display_name=user.display_name,
                role=user.role,
                location=user.location,
            )
            for user in technicians
        ],
    )


@router.get("/admin", response_model=AdminDashboard)
async def admin_dashboard(
    claim: AdminClaim,
    service: TicketServiceDep,
    records: RecordRepositoryDep,
    guard: Guard,
) -> AdminDashboard:
    scope = guard.scope_for(claim)
    tickets = await service.list_tickets(claim)
    summary = TicketSummary.from_tickets(tickets)
    return AdminDashboard(
        display_name=claim.display_name,
        location=claim.location,
        tickets=[to_response(ticket) for ticket in tickets],
        summary=TicketSummaryResponse.model_validate(summary),
        breakdown_records=[IncidentRecordResponse.model_validate(r) for r in await records.list_breakdowns(scope)],
        safety_records=[IncidentRecordResponse.model_validate(r) for r in await records.list_safety(scope)],
    )
