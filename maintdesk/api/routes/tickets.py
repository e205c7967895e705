from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Path, Query, status
from pydantic import BaseModel, ConfigDict, Field

from maintdesk.dependencies.auth import CurrentClaim
from maintdesk.dependencies.services import TicketServiceDep
from maintdesk.tickets.models import Ticket, TicketCategory, TicketDraft
from maintdesk.tickets.state import TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])

# Ids are BIGSERIAL; anything larger can never match a row.
MAX_TICKET_ID = 2**63 - 1
TicketId = Annotated[int, Path(le=MAX_TICKET_ID)]


class TicketSubmitRequest(BaseModel):
    # Free text on purpose: unknown categories are coerced to "Other".
    category: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=4000)
    building_no: str | None = Field(default=None, max_length=100)
    area_code: str | None = Field(default=None, max_length=100)
    sub_area: str | None = Field(default=None, max_length=100)
    keyword: str | None = Field(default=None, max_length=200)

    def to_draft(self) -> TicketDraft:
        return TicketDraft.from_input(
            category=self.category,
            description=self.description,
            building_no=self.building_no,
            area_code=self.area_code,
            sub_area=self.sub_area,
            keyword=self.keyword,
        )


class TicketAssignRequest(BaseModel):
    assignee_id: str = Field(..., min_length=1, max_length=100)


class TicketCompleteRequest(BaseModel):
    completion_note: str | None = Field(default=None, max_length=2000)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    raised_by: str
    raised_by_name: str | None
    category: TicketCategory
    description: str | None
    building_no: str | None
    area_code: str | None
    sub_area: str | None
    keyword: str | None
    location: str
    status: TicketStatus
    assigned_to: str | None
    planner_id: str | None
    completion_note: str | None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None
    completed_at: datetime | None


def to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def submit_ticket(payload: TicketSubmitRequest, service: TicketServiceDep, claim: CurrentClaim) -> TicketResponse:
    ticket = await service.submit(claim, payload.to_draft())
    return to_response(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    claim: CurrentClaim,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    tickets = await service.list_tickets(claim, status=status_filter)
    return [to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: TicketId, service: TicketServiceDep, claim: CurrentClaim) -> TicketResponse:
    return to_response(await service.get_ticket(claim, ticket_id))


@router.post("/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: TicketId,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    claim: CurrentClaim,
) -> TicketResponse:
    ticket = await service.assign(claim, ticket_id, payload.assignee_id)
    return to_response(ticket)


@router.post("/{ticket_id}/start", response_model=TicketResponse)
async def start_ticket(ticket_id: TicketId, service: TicketServiceDep, claim: CurrentClaim) -> TicketResponse:
    return to_response(await service.start(claim, ticket_id))


@router.post("/{ticket_id}/complete", response_model=TicketResponse)
async def complete_ticket(
    ticket_id: TicketId,
    service: TicketServiceDep,
    claim: CurrentClaim,
    payload: TicketCompleteRequest | None = None,
) -> TicketResponse:
    note = payload.completion_note if payload is not None else None
    return to_response(await service.complete(claim, ticket_id, note))
