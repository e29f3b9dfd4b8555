from typing import Optional

from fastapi import APIRouter, Depends, status

from hr_approvals.core.context import RequestContext
from hr_approvals.routers.deps import get_approval_service, get_request_context, respond
from hr_approvals.schemas.workflow import ApprovalWorkflowCreate
from hr_approvals.services.approvals import ApprovalService

router = APIRouter(prefix="/approval-workflows", tags=["Approval Workflows"])


@router.get("")
def list_approval_workflows(
    workflow_type: Optional[str] = None,
    department_id: Optional[int] = None,
    only_active: bool = False,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    filters = {"workflow_type": workflow_type, "department_id": department_id, "only_active": only_active}
    return respond(service.list_approval_workflows(ctx, filters))


@router.post("")
def create_approval_workflow(
    payload: ApprovalWorkflowCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ApprovalService = Depends(get_approval_service)
):
    result = service.create_approval_workflow(
        ctx,
        department_id=payload.department_id,
        workflow_type=payload.workflow_type,
        steps=payload.steps,
        is_active=payload.is_active,
    )
    return respond(result, status.HTTP_201_CREATED)
