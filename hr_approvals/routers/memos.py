from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from hr_approvals.core.context import RequestContext
from hr_approvals.core.limiter import SUBMISSION_LIMIT, limiter
from hr_approvals.routers.deps import get_approval_service, get_request_context, respond
from hr_approvals.schemas.memo import MemoApproveRequest, MemoCreate, MemoRejectRequest
from hr_approvals.services.approvals import ApprovalService

router = APIRouter(prefix="/memos", tags=["Memos"])


@router.get("")
def list_memos(
    status_filter: Optional[str] = Query(None, alias="status"),
    memo_type: Optional[str] = None,
    employee_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.list_memos(
        ctx, status=status_filter, memo_type=memo_type, employee_id=employee_id, page=page, page_size=page_size
    ))


@router.post("")
@limiter.limit(SUBMISSION_LIMIT)
def create_memo(
    request: Request,
    payload: MemoCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    result = service.create_memo(
        ctx,
        title=payload.title,
        content=payload.content,
        recipient_ids=payload.recipient_ids,
        memo_type=payload.memo_type,
        priority=payload.priority,
        reference_number=payload.reference_number,
    )
    return respond(result, status.HTTP_201_CREATED)


@router.post("/{memo_id}/approve")
def approve_memo(
    memo_id: int,
    payload: Optional[MemoApproveRequest] = Body(None),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.approve_memo(ctx, memo_id, payload.comments if payload else None))


@router.post("/{memo_id}/reject")
def reject_memo(
    memo_id: int,
    payload: Optional[MemoRejectRequest] = Body(None),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.reject_memo(ctx, memo_id, payload.rejection_reason if payload else None))


@router.post("/{memo_id}/read")
def mark_memo_read(
    memo_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.mark_memo_read(ctx, memo_id))
