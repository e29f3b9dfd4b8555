from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from hr_approvals.core.exceptions import LeaveTypeInUse, NotFound, ValidationFailed
from hr_approvals.models.leave_balance import LeaveBalance
from hr_approvals.models.leave_request import LeaveRequest
from hr_approvals.models.leave_type import LeaveType, LeaveTypeStatus
from hr_approvals.services.audit import AuditService
from hr_approvals.services.base import BaseService

EDITABLE_FIELDS = (
    "name", "code", "description", "color_code", "days_allowed", "is_paid",
    "carry_forward_allowed", "max_carry_forward_days", "requires_documentation", "status",
)


class LeaveTypeService(BaseService):
    """Company-scoped leave type catalogue. Balances are provisioned from these definitions."""

    def __init__(self, db: Session, org_id: Optional[int] = None):
        super().__init__(db, org_id)
        self.audit = AuditService(db, org_id)

    def create(self, company_id: int, actor_id: Optional[int], data: Dict[str, Any]) -> LeaveType:
        values = self._clean({k: data.get(k) for k in EDITABLE_FIELDS if k in data}, creating=True)
        self._ensure_code_free(company_id, values.get("code"))

        leave_type = LeaveType(company_id=company_id, **values)
        self.db.add(leave_type)
        self.db.flush()
        self.audit.log_action(
            action="create_leave_type",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            company_id=company_id,
            after_state=values,
        )
        self._commit()
        self.db.refresh(leave_type)
        self._logger.info("Leave type created", extra={"leave_type_id": leave_type.id, "company_id": company_id})
        return leave_type

    def update(self, company_id: int, leave_type_id: int, actor_id: Optional[int], data: Dict[str, Any]) -> LeaveType:
        leave_type = self.get(company_id, leave_type_id)
        values = self._clean({k: v for k, v in data.items() if k in EDITABLE_FIELDS})
        if "code" in values and values["code"] != leave_type.code:
            self._ensure_code_free(company_id, values["code"], exclude_id=leave_type.id)

        before = {k: getattr(leave_type, k) for k in values}
        for key, value in values.items():
            setattr(leave_type, key, value)
        self.audit.log_action(
            action="update_leave_type",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            company_id=company_id,
            before_state=before,
            after_state=values,
        )
        self._commit()
        self.db.refresh(leave_type)
        return leave_type

    def get(self, company_id: int, leave_type_id: int) -> LeaveType:
        leave_type = self.db.query(LeaveType).filter(
            LeaveType.id == leave_type_id,
            LeaveType.company_id == company_id
        ).first()
        if not leave_type:
            raise NotFound("Leave type", leave_type_id)
        return leave_type

    def list(self, company_id: int, search: Optional[str] = None, page: int = 1, page_size: int = 10) -> Tuple[List[LeaveType], int]:
        self._check_paging(page, page_size)
        query = self.db.query(LeaveType).filter(LeaveType.company_id == company_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(LeaveType.name.ilike(pattern), LeaveType.code.ilike(pattern)))
        total = query.count()
        items = query.order_by(LeaveType.name.asc(), LeaveType.id.asc()) \
            .offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def delete(self, company_id: int, leave_type_id: int, actor_id: Optional[int]) -> None:
        leave_type = self.get(company_id, leave_type_id)
        in_use = self.db.query(LeaveBalance.id).filter(LeaveBalance.leave_type_id == leave_type.id).first() \
            or self.db.query(LeaveRequest.id).filter(LeaveRequest.leave_type_id == leave_type.id).first()
        if in_use:
            raise LeaveTypeInUse(leave_type.id)

        self.audit.log_action(
            action="delete_leave_type",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            company_id=company_id,
            before_state={"name": leave_type.name, "code": leave_type.code},
        )
        self.db.delete(leave_type)
        self._commit()

    def _ensure_code_free(self, company_id: int, code: Optional[str], exclude_id: Optional[int] = None):
        if not code:
            return
        query = self.db.query(LeaveType.id).filter(
            LeaveType.company_id == company_id,
            LeaveType.code == code
        )
        if exclude_id is not None:
            query = query.filter(LeaveType.id != exclude_id)
        if query.first():
            raise ValidationFailed(f"Leave type code '{code}' already exists", field="code")

    @staticmethod
    def _clean(values: Dict[str, Any], creating: bool = False) -> Dict[str, Any]:
        if creating or "name" in values:
            name = (values.get("name") or "").strip()
            if not name:
                raise ValidationFailed("Leave type name is required", field="name")
            values["name"] = name
        if "code" in values:
            values["code"] = (values["code"] or "").strip().upper() or None
        for field in ("days_allowed", "max_carry_forward_days"):
            if field in values:
                if values[field] is None:
                    values[field] = 0
                value = values[field]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ValidationFailed(f"{field} must be a non-negative integer", field=field)
        if "status" in values:
            try:
                values["status"] = LeaveTypeStatus(values["status"] or LeaveTypeStatus.ACTIVE.value).value
            except ValueError:
                raise ValidationFailed(f"Invalid status {values['status']!r}", field="status")
        for flag in ("is_paid", "carry_forward_allowed", "requires_documentation"):
            if flag in values and values[flag] is None:
                values.pop(flag)
        return values
