"""
Memo engine: pending -> approved | rejected, plus per-recipient read tracking.

Approval follows the same accumulator as leave requests (workflow type
``memo``, resolved through the sender's department) but never touches the
balance ledger. Read state is independent of approval state.
"""
import time
from typing import Any, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hr_approvals.core.config import settings
from hr_approvals.core.context import RequestContext
from hr_approvals.core.exceptions import NotFound, ValidationFailed
from hr_approvals.models.approval_workflow import WorkflowType
from hr_approvals.models.employee import Employee
from hr_approvals.models.memo import Memo, MemoPriority, MemoRead, MemoRecipient, MemoStatus, MemoType
from hr_approvals.services.audit import AuditService
from hr_approvals.services.base import BaseService
from hr_approvals.services.directory import DirectoryLookup, SqlDirectory
from hr_approvals.services.transitions import compare_and_swap, ensure_pending, next_approval, utcnow
from hr_approvals.services.workflow_registry import WorkflowRegistry


def default_reference_number() -> str:
    return f"MEM-{int(time.time() * 1000)}"


def _parse_enum(enum_cls, value: Any, field: str, default):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationFailed(f"Invalid {field} {value!r}. Expected one of: {allowed}", field=field)


def _snapshot(memo: Memo) -> dict:
    return {
        "status": memo.status,
        "approval_level": memo.approval_level,
        "required_levels": memo.required_levels,
        "approved_by": memo.approved_by,
        "rejected_by": memo.rejected_by,
    }


class MemoService(BaseService):
    def __init__(
        self,
        db: Session,
        directory: Optional[DirectoryLookup] = None,
        registry: Optional[WorkflowRegistry] = None,
        enforce_multi_step: Optional[bool] = None,
        requires_approval: Optional[bool] = None
    ):
        super().__init__(db)
        self.directory = directory or SqlDirectory(db)
        self.registry = registry or WorkflowRegistry(db, self.directory)
        self.audit = AuditService(db)
        self.enforce_multi_step = (
            settings.approvals.enforce_multi_step if enforce_multi_step is None else enforce_multi_step
        )
        self.requires_approval = (
            settings.approvals.memo_requires_approval if requires_approval is None else requires_approval
        )

    def create(
        self,
        ctx: RequestContext,
        title: str,
        content: str,
        recipient_ids: Iterable[int],
        memo_type: Optional[str] = None,
        priority: Optional[str] = None,
        reference_number: Optional[str] = None
    ) -> Memo:
        title = (title or "").strip()
        content = (content or "").strip()
        if not title:
            raise ValidationFailed("Memo title is required", field="title")
        if not content:
            raise ValidationFailed("Memo content is required", field="content")

        try:
            recipients = sorted({int(r) for r in (recipient_ids or [])})
        except (TypeError, ValueError):
            raise ValidationFailed("Recipient ids must be integers", field="recipient_ids")
        if not recipients:
            raise ValidationFailed("Select at least one recipient", field="recipient_ids")

        m_type = _parse_enum(MemoType, memo_type, "memo_type", MemoType.GENERAL)
        m_priority = _parse_enum(MemoPriority, priority, "priority", MemoPriority.LOW)

        sender = self.directory.get_employee(ctx.employee_id)
        if not sender or sender.company_id != ctx.company_id:
            raise NotFound("Employee", ctx.employee_id)

        found = {
            row.id for row in self.db.query(Employee.id).filter(
                Employee.id.in_(recipients),
                Employee.company_id == ctx.company_id
            ).all()
        }
        missing = [r for r in recipients if r not in found]
        if missing:
            raise NotFound("Recipient", missing[0])

        memo = Memo(
            company_id=ctx.company_id,
            sender_id=sender.id,
            title=title,
            content=content,
            memo_type=m_type.value,
            priority=m_priority.value,
            reference_number=(reference_number or "").strip() or default_reference_number(),
            status=MemoStatus.PENDING.value,
            approval_level=0,
            approver_ids=[],
            recipients=[MemoRecipient(employee_id=r) for r in recipients],
        )
        if not self.requires_approval:
            memo.status = MemoStatus.APPROVED.value
            memo.approved_at = utcnow()

        try:
            self.db.add(memo)
            self.db.flush()
            self.audit.log_action(
                action="create_memo",
                entity_type="memo",
                entity_id=memo.id,
                actor_id=ctx.employee_id,
                company_id=ctx.company_id,
                details={"recipient_ids": recipients, "memo_type": m_type.value},
                after_state=_snapshot(memo),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(memo)
        self._logger.info("Memo created", extra={"memo_id": memo.id, "status": memo.status})
        return memo

    def approve(self, ctx: RequestContext, memo_id: int, comments: Optional[str] = None) -> Memo:
        memo = self.get(ctx, memo_id)
        ensure_pending(memo.status)
        before = _snapshot(memo)

        required = memo.required_levels
        if required is None:
            department_id = self.directory.department_of(memo.sender_id)
            workflow = self.registry.resolve(memo.company_id, department_id, WorkflowType.MEMO)
            required = workflow.count if workflow else 1
        step = next_approval(memo.approval_level, required, memo.approver_ids, ctx.employee_id, self.enforce_multi_step)

        values = {
            "approval_level": step.level,
            "required_levels": step.required,
            "approver_ids": step.approver_ids,
        }
        if comments and comments.strip():
            values["approval_comments"] = comments.strip()
        if step.final:
            values.update(status=MemoStatus.APPROVED.value, approved_by=ctx.employee_id, approved_at=utcnow())

        self._decide(
            ctx, memo, values, before,
            action="approve_memo_final" if step.final else f"approve_memo_level_{step.level}",
            expected_level=memo.approval_level
        )
        return memo

    def reject(self, ctx: RequestContext, memo_id: int, rejection_reason: Optional[str]) -> Memo:
        reason = (rejection_reason or "").strip()
        if not reason:
            raise ValidationFailed("A rejection reason is required for memos", field="rejection_reason")
        memo = self.get(ctx, memo_id)
        ensure_pending(memo.status)
        before = _snapshot(memo)
        values = {
            "status": MemoStatus.REJECTED.value,
            "rejected_by": ctx.employee_id,
            "rejected_at": utcnow(),
            "rejection_reason": reason,
        }
        self._decide(ctx, memo, values, before, action="reject_memo")
        return memo

    def mark_as_read(self, ctx: RequestContext, memo_id: int) -> Memo:
        """Idempotent. Only a recipient or the sender can mark a memo read."""
        memo = self.get(ctx, memo_id)
        if ctx.employee_id != memo.sender_id and ctx.employee_id not in memo.recipient_ids:
            raise NotFound("Memo", memo_id)
        if ctx.employee_id in memo.read_by:
            return memo

        try:
            self.db.add(MemoRead(memo_id=memo.id, employee_id=ctx.employee_id))
            self.db.commit()
        except IntegrityError:
            # Concurrent mark by the same reader; the row exists either way
            self.db.rollback()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(memo)
        return memo

    def get(self, ctx: RequestContext, memo_id: int) -> Memo:
        memo = self.db.query(Memo).filter(
            Memo.id == memo_id,
            Memo.company_id == ctx.company_id
        ).first()
        if not memo:
            raise NotFound("Memo", memo_id)
        return memo

    def list(
        self,
        ctx: RequestContext,
        status: Optional[str] = None,
        memo_type: Optional[str] = None,
        employee_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[Memo], int]:
        self._check_paging(page, page_size)
        query = self.db.query(Memo).filter(Memo.company_id == ctx.company_id)
        if status:
            query = query.filter(Memo.status == _parse_enum(MemoStatus, status, "status", None).value)
        if memo_type:
            query = query.filter(Memo.memo_type == _parse_enum(MemoType, memo_type, "memo_type", None).value)
        if employee_id is not None:
            query = query.filter(Memo.recipients.any(MemoRecipient.employee_id == employee_id))
        total = query.count()
        items = query.order_by(Memo.created_at.desc(), Memo.id.desc()) \
            .offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def _decide(self, ctx: RequestContext, memo: Memo, values: dict, before: dict, action: str,
                expected_level: Optional[int] = None):
        try:
            compare_and_swap(self.db, Memo, memo.id, values, expected_level=expected_level)
            self.audit.log_action(
                action=action,
                entity_type="memo",
                entity_id=memo.id,
                actor_id=ctx.employee_id,
                company_id=ctx.company_id,
                before_state=before,
                after_state={**before, **values},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(memo)
        self._logger.info("Memo decision recorded", extra={"memo_id": memo.id, "status": memo.status})
