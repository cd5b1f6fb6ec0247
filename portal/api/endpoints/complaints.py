"""
Complaint Endpoints

POST   /api/v1/complaints        → public intake (always starts as pending)
GET    /api/v1/complaints        → admin: all; staff: complaints about their own profile
GET    /api/v1/complaints/{id}   → admin, or staff owning the complaint's target
PUT    /api/v1/complaints/{id}   → admin: status / priority / resolution
DELETE /api/v1/complaints/{id}   → admin delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.params import IdPath, IdQuery
from portal.api.presenters import page_response
from portal.core.access import Action, Principal, can_access_target, require, scope_for
from portal.core.complaint_store import (
    create_complaint,
    delete_complaint,
    get_complaint,
    list_complaints,
    update_complaint,
)
from portal.core.database import get_db
from portal.core.errors import NotFound
from portal.core.limiter import limiter
from portal.core.pagination import PageParams, page_params
from portal.core.targets import for_agent, for_employee, target_from_columns, target_of
from portal.models.schemas import (
    ComplaintCreate,
    ComplaintOut,
    ComplaintStatus,
    ComplaintType,
    ComplaintUpdate,
    MessageResponse,
    Page,
    Priority,
)

router = APIRouter()


@router.post(
    "",
    response_model=ComplaintOut,
    status_code=status.HTTP_201_CREATED,
    summary="File a complaint",
    description="Optionally about one agent or employee; with neither it is a general complaint.",
)
@limiter.limit("10/minute")
async def post_complaint(
    request: Request,
    payload: ComplaintCreate,
    db: AsyncSession = Depends(get_db),
) -> ComplaintOut:
    target = target_from_columns(payload.agent_id, payload.employee_id)
    data = payload.model_dump(exclude={"agent_id", "employee_id"})
    complaint = await create_complaint(data, target, db)
    return ComplaintOut.model_validate(complaint)


@router.get("", response_model=Page[ComplaintOut], summary="List complaints")
async def get_complaints(
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    priority: Optional[Priority] = Query(None),
    type: Optional[ComplaintType] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    agent_id: IdQuery = None,
    employee_id: IdQuery = None,
    params: PageParams = Depends(page_params),
    principal: Principal = Depends(require(Action.READ_COMPLAINTS)),
    db: AsyncSession = Depends(get_db),
):
    requested = []
    if agent_id is not None:
        requested.append(for_agent(agent_id))
    if employee_id is not None:
        requested.append(for_employee(employee_id))
    result = await list_complaints(
        db,
        params,
        scope=scope_for(principal),
        requested=requested,
        status=status_filter,
        priority=priority,
        complaint_type=type,
        search=search,
    )
    return page_response(result, ComplaintOut)


@router.get("/{complaint_id}", response_model=ComplaintOut, summary="Get complaint")
async def get_one_complaint(
    complaint_id: IdPath,
    principal: Principal = Depends(require(Action.READ_COMPLAINTS)),
    db: AsyncSession = Depends(get_db),
) -> ComplaintOut:
    scope = scope_for(principal)
    complaint = await get_complaint(complaint_id, db)
    if scope is not None:
        target = target_of(complaint)
        if target is None or not can_access_target(principal, target):
            # Same answer as for a missing complaint
            raise NotFound("Complaint not found")
    return ComplaintOut.model_validate(complaint)


@router.put("/{complaint_id}", response_model=ComplaintOut, summary="Update complaint")
async def put_complaint(
    complaint_id: IdPath,
    payload: ComplaintUpdate,
    _: Principal = Depends(require(Action.MANAGE_COMPLAINTS)),
    db: AsyncSession = Depends(get_db),
) -> ComplaintOut:
    complaint = await update_complaint(
        complaint_id,
        db,
        status=payload.status,
        priority=payload.priority,
        resolution=payload.resolution,
        set_resolution="resolution" in payload.model_fields_set,
    )
    return ComplaintOut.model_validate(complaint)


@router.delete("/{complaint_id}", response_model=MessageResponse, summary="Delete complaint")
async def remove_complaint(
    complaint_id: IdPath,
    _: Principal = Depends(require(Action.MANAGE_COMPLAINTS)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await delete_complaint(complaint_id, db)
    return MessageResponse(message="Complaint deleted successfully")
