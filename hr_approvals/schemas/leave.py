from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional

class LeaveRequestCreate(BaseModel):
    leave_type_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None
    attachment: Optional[str] = None

class LeaveRejectRequest(BaseModel):
    rejection_reason: Optional[str] = None

class LeaveRequestResponse(BaseModel):
    id: int
    company_id: int
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    days_requested: int
    balance_year: int
    reason: Optional[str] = None
    attachment: Optional[str] = None
    status: str
    approval_level: int = 0
    required_levels: Optional[int] = None
    approver_ids: List[int] = Field(default_factory=list)
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    rejected_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LeaveBalanceResponse(BaseModel):
    id: Optional[int] = None
    employee_id: int
    leave_type_id: int
    leave_type_name: str
    year: int
    total_days: int
    used_days: int
    pending_days: int
    carried_forward_days: int
    available: int
    persisted: bool

    model_config = ConfigDict(from_attributes=True)
