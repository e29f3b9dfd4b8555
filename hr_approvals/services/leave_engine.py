"""
Leave Request Engine

State machine for leave requests:

    pending -> approved | rejected | withdrawn   (all terminal)

Every transition that touches the ledger runs inside the ledger's exclusive
section for the request's balance tuple and commits once. The status change
itself is a compare-and-swap, so a decided request can never be decided again
and its reservation can never be released twice.
"""
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from hr_approvals.core.config import settings
from hr_approvals.core.context import RequestContext
from hr_approvals.core.exceptions import InvalidDateRange, InvalidTransition, NotFound, ValidationFailed
from hr_approvals.models.approval_workflow import WorkflowType
from hr_approvals.models.leave_request import LeaveRequest, LeaveStatus
from hr_approvals.models.leave_type import LeaveType
from hr_approvals.services.audit import AuditService
from hr_approvals.services.base import BaseService
from hr_approvals.services.directory import DirectoryLookup, EmployeeRef, SqlDirectory
from hr_approvals.services.ledger import BalanceLedger
from hr_approvals.services.transitions import compare_and_swap, ensure_pending, next_approval, utcnow
from hr_approvals.services.workflow_registry import WorkflowRegistry


def inclusive_day_count(start: date, end: date) -> int:
    """Calendar days from start to end, both included."""
    if end < start:
        raise InvalidDateRange(details={"start_date": start.isoformat(), "end_date": end.isoformat()})
    return (end - start).days + 1


def _snapshot(req: LeaveRequest) -> dict:
    return {
        "status": req.status,
        "approval_level": req.approval_level,
        "required_levels": req.required_levels,
        "approved_by": req.approved_by,
        "rejected_by": req.rejected_by,
    }


class LeaveRequestEngine(BaseService):
    def __init__(
        self,
        db: Session,
        directory: Optional[DirectoryLookup] = None,
        ledger: Optional[BalanceLedger] = None,
        registry: Optional[WorkflowRegistry] = None,
        enforce_multi_step: Optional[bool] = None
    ):
        super().__init__(db)
        self.directory = directory or SqlDirectory(db)
        self.ledger = ledger or BalanceLedger(db)
        self.registry = registry or WorkflowRegistry(db, self.directory)
        self.audit = AuditService(db)
        if enforce_multi_step is None:
            enforce_multi_step = settings.approvals.enforce_multi_step
        self.enforce_multi_step = enforce_multi_step

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def submit(
        self,
        ctx: RequestContext,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
        attachment: Optional[str] = None
    ) -> LeaveRequest:
        days = inclusive_day_count(start_date, end_date)
        employee = self._employee(ctx)
        leave_type = self._leave_type(ctx.company_id, leave_type_id)

        if not leave_type.is_active:
            raise ValidationFailed(f"Leave type '{leave_type.name}' is not active", field="leave_type_id")
        attachment = (attachment or "").strip() or None
        if leave_type.requires_documentation and not attachment:
            raise ValidationFailed(f"Leave type '{leave_type.name}' requires a supporting document", field="attachment")

        # Cross-year requests are charged entirely to the start date's year
        year = start_date.year
        try:
            with self.ledger.exclusive(employee.id, leave_type.id, year):
                self.ledger.reserve(employee.id, leave_type.id, year, days)
                req = LeaveRequest(
                    company_id=ctx.company_id,
                    employee_id=employee.id,
                    leave_type_id=leave_type.id,
                    start_date=start_date,
                    end_date=end_date,
                    days_requested=days,
                    balance_year=year,
                    reason=(reason or "").strip() or None,
                    attachment=attachment,
                    status=LeaveStatus.PENDING.value,
                    approval_level=0,
                    approver_ids=[],
                )
                self.db.add(req)
                self.db.flush()
                self.audit.log_action(
                    action="submit_leave",
                    entity_type="leave_request",
                    entity_id=req.id,
                    actor_id=ctx.employee_id,
                    company_id=ctx.company_id,
                    details={"leave_type_id": leave_type.id, "days_requested": days, "year": year},
                    after_state=_snapshot(req),
                )
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(req)
        self._logger.info(
            "Leave request submitted",
            extra={"leave_request_id": req.id, "employee_id": employee.id, "days_requested": days}
        )
        return req

    def approve(self, ctx: RequestContext, request_id: int) -> LeaveRequest:
        req = self.get(ctx, request_id)
        ensure_pending(req.status)
        if ctx.employee_id == req.employee_id:
            raise InvalidTransition(
                "You cannot approve your own leave request",
                details={"actor_id": ctx.employee_id}
            )
        before = _snapshot(req)

        try:
            with self.ledger.exclusive(*self._balance_key(req)):
                required = req.required_levels
                if required is None:
                    required = self._required_levels(req)
                step = next_approval(
                    req.approval_level, required, req.approver_ids, ctx.employee_id, self.enforce_multi_step
                )
                now = utcnow()
                values = {
                    "approval_level": step.level,
                    "required_levels": step.required,
                    "approver_ids": step.approver_ids,
                }
                if step.final:
                    values.update(
                        status=LeaveStatus.APPROVED.value,
                        approved_by=ctx.employee_id,
                        approved_at=now,
                    )
                compare_and_swap(self.db, LeaveRequest, req.id, values, expected_level=req.approval_level)
                if step.final:
                    self.ledger.commit(*self._balance_key(req), req.days_requested)

                self.audit.log_action(
                    action="approve_leave_final" if step.final else f"approve_leave_level_{step.level}",
                    entity_type="leave_request",
                    entity_id=req.id,
                    actor_id=ctx.employee_id,
                    company_id=ctx.company_id,
                    details={"level": step.level, "required_levels": step.required},
                    before_state=before,
                    after_state={**before, **values},
                )
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(req)
        self._logger.info(
            "Leave request approval recorded",
            extra={"leave_request_id": req.id, "status": req.status, "approval_level": req.approval_level}
        )
        return req

    def reject(self, ctx: RequestContext, request_id: int, rejection_reason: Optional[str] = None) -> LeaveRequest:
        # Reason is optional for leave (memos require one)
        req = self.get(ctx, request_id)
        ensure_pending(req.status)
        before = _snapshot(req)
        values = {
            "status": LeaveStatus.REJECTED.value,
            "rejected_by": ctx.employee_id,
            "rejected_at": utcnow(),
            "rejection_reason": (rejection_reason or "").strip() or None,
        }
        self._release_with(ctx, req, values, action="reject_leave", before=before)
        return req

    def withdraw(self, ctx: RequestContext, request_id: int) -> LeaveRequest:
        req = self.get(ctx, request_id)
        ensure_pending(req.status)
        if ctx.employee_id != req.employee_id:
            raise InvalidTransition(
                "Only the employee who submitted this request may withdraw it",
                details={"actor_id": ctx.employee_id}
            )
        before = _snapshot(req)
        values = {
            "status": LeaveStatus.WITHDRAWN.value,
            "withdrawn_at": utcnow(),
        }
        self._release_with(ctx, req, values, action="withdraw_leave", before=before)
        return req

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, ctx: RequestContext, request_id: int) -> LeaveRequest:
        req = self.db.query(LeaveRequest).filter(
            LeaveRequest.id == request_id,
            LeaveRequest.company_id == ctx.company_id
        ).first()
        if not req:
            raise NotFound("Leave request", request_id)
        return req

    def list(
        self,
        ctx: RequestContext,
        employee_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[LeaveRequest], int]:
        self._check_paging(page, page_size)
        query = self.db.query(LeaveRequest).filter(LeaveRequest.company_id == ctx.company_id)
        if employee_id is not None:
            query = query.filter(LeaveRequest.employee_id == employee_id)
        if status:
            try:
                query = query.filter(LeaveRequest.status == LeaveStatus(status).value)
            except ValueError:
                raise ValidationFailed(f"Unknown leave request status {status!r}", field="status")
        total = query.count()
        items = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()) \
            .offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _release_with(self, ctx: RequestContext, req: LeaveRequest, values: dict, action: str, before: dict):
        try:
            with self.ledger.exclusive(*self._balance_key(req)):
                compare_and_swap(self.db, LeaveRequest, req.id, values)
                self.ledger.release(*self._balance_key(req), req.days_requested)
                self.audit.log_action(
                    action=action,
                    entity_type="leave_request",
                    entity_id=req.id,
                    actor_id=ctx.employee_id,
                    company_id=ctx.company_id,
                    details={"days_released": req.days_requested},
                    before_state=before,
                    after_state={**before, **values},
                )
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(req)
        self._logger.info("Leave request decided", extra={"leave_request_id": req.id, "status": req.status})

    def _required_levels(self, req: LeaveRequest) -> int:
        department_id = self.directory.department_of(req.employee_id)
        workflow = self.registry.resolve(req.company_id, department_id, WorkflowType.LEAVE)
        if workflow is None:
            return 1
        return workflow.count

    @staticmethod
    def _balance_key(req: LeaveRequest) -> Tuple[int, int, int]:
        return req.employee_id, req.leave_type_id, req.balance_year

    def _employee(self, ctx: RequestContext) -> EmployeeRef:
        employee = self.directory.get_employee(ctx.employee_id)
        if not employee or employee.company_id != ctx.company_id:
            raise NotFound("Employee", ctx.employee_id)
        return employee

    def _leave_type(self, company_id: int, leave_type_id: int) -> LeaveType:
        leave_type = self.db.query(LeaveType).filter(
            LeaveType.id == leave_type_id,
            LeaveType.company_id == company_id
        ).first()
        if not leave_type:
            raise NotFound("Leave type", leave_type_id)
        return leave_type
