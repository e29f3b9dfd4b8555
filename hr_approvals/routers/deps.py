from typing import Optional

from fastapi import Depends, Header, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from hr_approvals.core.context import RequestContext
from hr_approvals.core.exceptions import STATUS_BY_ERROR_CODE, AuthenticationError
from hr_approvals.core.schemas import ApiResponse
from hr_approvals.database import get_db
from hr_approvals.services.approvals import ApprovalService


def get_request_context(
    x_company_id: Optional[int] = Header(None),
    x_employee_id: Optional[int] = Header(None)
) -> RequestContext:
    """
    Caller identity for every API call.
    Authentication happens upstream; the gateway forwards the resolved company and employee as headers.
    """
    if x_company_id is None or x_employee_id is None:
        raise AuthenticationError("Missing X-Company-Id or X-Employee-Id header")
    return RequestContext(company_id=x_company_id, employee_id=x_employee_id)


def get_approval_service(db: Session = Depends(get_db)) -> ApprovalService:
    return ApprovalService(db)


def respond(result: ApiResponse, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Render a facade result with the same envelope the global exception handlers use for errors."""
    if result.success:
        return JSONResponse(status_code=success_status, content=result.to_dict())
    error = result.error
    return JSONResponse(
        status_code=STATUS_BY_ERROR_CODE.get(error.code, status.HTTP_400_BAD_REQUEST),
        content={
            "success": False,
            "errors": [{"msg": error.message, "code": error.code, "details": error.details}]
        }
    )
