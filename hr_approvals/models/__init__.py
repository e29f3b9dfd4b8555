# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    department, employee, leave_type, leave_balance, leave_request,
    approval_workflow, memo, audit_log
)

# Explicit class exports for cleaner imports
from .department import Department
from .employee import Employee
from .leave_type import LeaveType
from .leave_balance import LeaveBalance
from .leave_request import LeaveRequest
from .approval_workflow import ApprovalWorkflow
from .memo import Memo, MemoRecipient, MemoRead
from .audit_log import AuditLog

__all__ = [
    "Department",
    "Employee",
    "LeaveType",
    "LeaveBalance",
    "LeaveRequest",
    "ApprovalWorkflow",
    "Memo",
    "MemoRecipient",
    "MemoRead",
    "AuditLog",
]
