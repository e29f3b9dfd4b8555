from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from hr_approvals.core.context import RequestContext
from hr_approvals.routers.deps import get_approval_service, get_request_context, respond
from hr_approvals.schemas.leave_type import LeaveTypeCreate, LeaveTypeUpdate
from hr_approvals.services.approvals import ApprovalService

router = APIRouter(tags=["Leave Types"])


@router.get("/companies/{company_id}/leave-types")
def list_leave_types(
    company_id: int,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.list_leave_types(ctx, company_id, search=search, page=page, page_size=page_size))


@router.post("/companies/{company_id}/leave-types")
def create_leave_type(
    company_id: int,
    payload: LeaveTypeCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.create_leave_type(ctx, company_id, payload.model_dump()), status.HTTP_201_CREATED)


@router.get("/leave-types/{leave_type_id}")
def get_leave_type(
    leave_type_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.get_leave_type(ctx, leave_type_id))


@router.put("/leave-types/{leave_type_id}")
def update_leave_type(
    leave_type_id: int,
    payload: LeaveTypeUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.update_leave_type(ctx, leave_type_id, payload.model_dump(exclude_unset=True)))


@router.delete("/leave-types/{leave_type_id}")
def delete_leave_type(
    leave_type_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.delete_leave_type(ctx, leave_type_id))
