from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from hr_approvals.core.context import RequestContext
from hr_approvals.core.limiter import SUBMISSION_LIMIT, limiter
from hr_approvals.routers.deps import get_approval_service, get_request_context, respond
from hr_approvals.schemas.leave import LeaveRejectRequest, LeaveRequestCreate
from hr_approvals.services.approvals import ApprovalService

router = APIRouter(prefix="/leave-requests", tags=["Leave Requests"])


@router.post("")
@limiter.limit(SUBMISSION_LIMIT)
def submit_leave_request(
    request: Request,
    payload: LeaveRequestCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    result = service.submit_leave_request(
        ctx,
        leave_type_id=payload.leave_type_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        attachment=payload.attachment,
    )
    return respond(result, status.HTTP_201_CREATED)


@router.get("")
def list_leave_requests(
    employee_id: Optional[int] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.list_leave_requests(
        ctx, employee_id=employee_id, status=status_filter, page=page, page_size=page_size
    ))


@router.get("/{request_id}")
def get_leave_request(
    request_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.get_leave_request(ctx, request_id))


@router.post("/{request_id}/approve")
def approve_leave_request(
    request_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.approve_leave_request(ctx, request_id))


@router.post("/{request_id}/reject")
def reject_leave_request(
    request_id: int,
    payload: Optional[LeaveRejectRequest] = Body(None),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    reason = payload.rejection_reason if payload else None
    return respond(service.reject_leave_request(ctx, request_id, reason))


@router.post("/{request_id}/withdraw")
def withdraw_leave_request(
    request_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.withdraw_leave_request(ctx, request_id))
