from typing import Optional

from fastapi import APIRouter, Depends, Query

from hr_approvals.core.context import RequestContext
from hr_approvals.routers.deps import get_approval_service, get_request_context, respond
from hr_approvals.services.approvals import ApprovalService

router = APIRouter(tags=["Leave Balances"])


@router.get("/employees/{employee_id}/leave-balances")
def list_employee_balances(
    employee_id: int,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.get_leave_balance(ctx, employee_id, year))


@router.get("/leave-balance/{leave_type_id}")
def get_own_balance(
    leave_type_id: int,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    return respond(service.get_own_balance(ctx, leave_type_id, year))
