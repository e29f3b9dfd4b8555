"""
ApprovalService: the caller-facing facade.

Every call takes an explicit RequestContext and returns an ApiResponse.
Domain errors come back as ``ApiResponse.fail(message, code, details)``
values; they are never raised past this boundary.
"""
import logging
from datetime import date, datetime, timezone
from functools import wraps
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hr_approvals.core.context import RequestContext
from hr_approvals.core.exceptions import AppException, InvariantViolation, NotFound
from hr_approvals.core.schemas import ApiResponse, Page
from hr_approvals.schemas.leave import LeaveBalanceResponse, LeaveRequestResponse
from hr_approvals.schemas.leave_type import LeaveTypeResponse
from hr_approvals.schemas.memo import MemoResponse
from hr_approvals.schemas.workflow import ApprovalWorkflowResponse
from hr_approvals.services.audit import AuditService
from hr_approvals.services.directory import DirectoryLookup, SqlDirectory
from hr_approvals.services.leave_engine import LeaveRequestEngine
from hr_approvals.services.leave_types import LeaveTypeService
from hr_approvals.services.ledger import BalanceLedger
from hr_approvals.services.memo_service import MemoService
from hr_approvals.services.workflow_registry import WorkflowRegistry

logger = logging.getLogger(__name__)


def as_result(func):
    """Wrap the return value in ApiResponse.ok and turn domain errors into ApiResponse.fail."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return ApiResponse.ok(func(self, *args, **kwargs))
        except AppException as exc:
            self.db.rollback()
            if isinstance(exc, InvariantViolation):
                logger.error(f"{func.__name__} failed: {exc.message}", extra={"code": exc.error_code, "details": exc.details})
            else:
                logger.info(f"{func.__name__} refused: {exc.message}", extra={"code": exc.error_code})
            return ApiResponse.fail(exc.message, exc.error_code, exc.details)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"{func.__name__} failed with a storage error")
            return ApiResponse.fail("A storage error occurred. Please retry.", "STORAGE_ERROR")
    return wrapper


def _page(schema, items: List[Any], total: int, page: int, page_size: int) -> Page:
    return Page.build([schema.model_validate(i) for i in items], total, page, page_size)


class ApprovalService:
    def __init__(
        self,
        db: Session,
        directory: Optional[DirectoryLookup] = None,
        enforce_multi_step: Optional[bool] = None,
        memo_requires_approval: Optional[bool] = None
    ):
        self.db = db
        self.directory = directory or SqlDirectory(db)
        self.ledger = BalanceLedger(db)
        self.registry = WorkflowRegistry(db, self.directory)
        self.leave = LeaveRequestEngine(
            db, directory=self.directory, ledger=self.ledger, registry=self.registry,
            enforce_multi_step=enforce_multi_step
        )
        self.memos = MemoService(
            db, directory=self.directory, registry=self.registry,
            enforce_multi_step=enforce_multi_step, requires_approval=memo_requires_approval
        )
        self.leave_types = LeaveTypeService(db)
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Leave requests
    # ------------------------------------------------------------------
    @as_result
    def submit_leave_request(
        self,
        ctx: RequestContext,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
        attachment: Optional[str] = None
    ) -> LeaveRequestResponse:
        req = self.leave.submit(ctx, leave_type_id, start_date, end_date, reason=reason, attachment=attachment)
        return LeaveRequestResponse.model_validate(req)

    @as_result
    def approve_leave_request(self, ctx: RequestContext, request_id: int) -> LeaveRequestResponse:
        return LeaveRequestResponse.model_validate(self.leave.approve(ctx, request_id))

    @as_result
    def reject_leave_request(
        self, ctx: RequestContext, request_id: int, rejection_reason: Optional[str] = None
    ) -> LeaveRequestResponse:
        return LeaveRequestResponse.model_validate(self.leave.reject(ctx, request_id, rejection_reason))

    @as_result
    def withdraw_leave_request(self, ctx: RequestContext, request_id: int) -> LeaveRequestResponse:
        return LeaveRequestResponse.model_validate(self.leave.withdraw(ctx, request_id))

    @as_result
    def get_leave_request(self, ctx: RequestContext, request_id: int) -> LeaveRequestResponse:
        return LeaveRequestResponse.model_validate(self.leave.get(ctx, request_id))

    @as_result
    def list_leave_requests(
        self,
        ctx: RequestContext,
        employee_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Page:
        items, total = self.leave.list(ctx, employee_id=employee_id, status=status, page=page, page_size=page_size)
        return _page(LeaveRequestResponse, items, total, page, page_size)

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------
    @as_result
    def get_leave_balance(self, ctx: RequestContext, employee_id: int, year: Optional[int] = None) -> List[LeaveBalanceResponse]:
        self._employee_in_company(ctx, employee_id)
        year = year or datetime.now(timezone.utc).year
        views = self.ledger.balances_for(employee_id, ctx.company_id, year)
        return [LeaveBalanceResponse.model_validate(v) for v in views]

    @as_result
    def get_own_balance(self, ctx: RequestContext, leave_type_id: int, year: Optional[int] = None) -> LeaveBalanceResponse:
        self._employee_in_company(ctx, ctx.employee_id)
        self.leave_types.get(ctx.company_id, leave_type_id)
        year = year or datetime.now(timezone.utc).year
        return LeaveBalanceResponse.model_validate(self.ledger.get_view(ctx.employee_id, leave_type_id, year))

    # ------------------------------------------------------------------
    # Approval workflows
    # ------------------------------------------------------------------
    @as_result
    def create_approval_workflow(
        self,
        ctx: RequestContext,
        department_id: int,
        workflow_type: str,
        steps: Iterable[Any],
        is_active: bool = True
    ) -> ApprovalWorkflowResponse:
        workflow = self.registry.create(ctx.company_id, department_id, workflow_type, steps, is_active=is_active)
        self.audit.log_action(
            action="create_approval_workflow",
            entity_type="approval_workflow",
            entity_id=workflow.id,
            actor_id=ctx.employee_id,
            company_id=ctx.company_id,
            after_state={"department_id": department_id, "workflow_type": workflow.workflow_type,
                         "steps": workflow.steps, "is_active": workflow.is_active},
        )
        self.db.commit()
        self.db.refresh(workflow)
        return ApprovalWorkflowResponse.model_validate(workflow)

    @as_result
    def list_approval_workflows(self, ctx: RequestContext, filters: Optional[Dict[str, Any]] = None) -> List[ApprovalWorkflowResponse]:
        filters = filters or {}
        workflows = self.registry.list(
            ctx.company_id,
            workflow_type=filters.get("workflow_type"),
            department_id=filters.get("department_id"),
            only_active=bool(filters.get("only_active", False)),
        )
        return [ApprovalWorkflowResponse.model_validate(w) for w in workflows]

    # ------------------------------------------------------------------
    # Memos
    # ------------------------------------------------------------------
    @as_result
    def create_memo(
        self,
        ctx: RequestContext,
        title: str,
        content: str,
        recipient_ids: Iterable[int],
        memo_type: Optional[str] = None,
        priority: Optional[str] = None,
        reference_number: Optional[str] = None
    ) -> MemoResponse:
        memo = self.memos.create(
            ctx, title, content, recipient_ids,
            memo_type=memo_type, priority=priority, reference_number=reference_number
        )
        return MemoResponse.model_validate(memo)

    @as_result
    def approve_memo(self, ctx: RequestContext, memo_id: int, comments: Optional[str] = None) -> MemoResponse:
        return MemoResponse.model_validate(self.memos.approve(ctx, memo_id, comments))

    @as_result
    def reject_memo(self, ctx: RequestContext, memo_id: int, rejection_reason: Optional[str]) -> MemoResponse:
        return MemoResponse.model_validate(self.memos.reject(ctx, memo_id, rejection_reason))

    @as_result
    def mark_memo_read(self, ctx: RequestContext, memo_id: int) -> MemoResponse:
        return MemoResponse.model_validate(self.memos.mark_as_read(ctx, memo_id))

    @as_result
    def list_memos(
        self,
        ctx: RequestContext,
        status: Optional[str] = None,
        memo_type: Optional[str] = None,
        employee_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Page:
        items, total = self.memos.list(
            ctx, status=status, memo_type=memo_type, employee_id=employee_id, page=page, page_size=page_size
        )
        return _page(MemoResponse, items, total, page, page_size)

    # ------------------------------------------------------------------
    # Leave types
    # ------------------------------------------------------------------
    @as_result
    def create_leave_type(self, ctx: RequestContext, company_id: int, data: Dict[str, Any]) -> LeaveTypeResponse:
        self._same_company(ctx, company_id)
        return LeaveTypeResponse.model_validate(self.leave_types.create(company_id, ctx.employee_id, data))

    @as_result
    def list_leave_types(
        self, ctx: RequestContext, company_id: int, search: Optional[str] = None, page: int = 1, page_size: int = 10
    ) -> Page:
        self._same_company(ctx, company_id)
        items, total = self.leave_types.list(company_id, search=search, page=page, page_size=page_size)
        return _page(LeaveTypeResponse, items, total, page, page_size)

    @as_result
    def get_leave_type(self, ctx: RequestContext, leave_type_id: int) -> LeaveTypeResponse:
        return LeaveTypeResponse.model_validate(self.leave_types.get(ctx.company_id, leave_type_id))

    @as_result
    def update_leave_type(self, ctx: RequestContext, leave_type_id: int, data: Dict[str, Any]) -> LeaveTypeResponse:
        leave_type = self.leave_types.update(ctx.company_id, leave_type_id, ctx.employee_id, data)
        return LeaveTypeResponse.model_validate(leave_type)

    @as_result
    def delete_leave_type(self, ctx: RequestContext, leave_type_id: int) -> Dict[str, Any]:
        self.leave_types.delete(ctx.company_id, leave_type_id, ctx.employee_id)
        return {"id": leave_type_id, "deleted": True}

    # ------------------------------------------------------------------
    # Scoping helpers
    # ------------------------------------------------------------------
    def _employee_in_company(self, ctx: RequestContext, employee_id: int):
        employee = self.directory.get_employee(employee_id)
        if not employee or employee.company_id != ctx.company_id:
            raise NotFound("Employee", employee_id)

    @staticmethod
    def _same_company(ctx: RequestContext, company_id: int):
        if company_id != ctx.company_id:
            raise NotFound("Company", company_id)
