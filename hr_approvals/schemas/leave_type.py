from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

class LeaveTypeBase(BaseModel):
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    color_code: Optional[str] = None
    days_allowed: int = 0
    is_paid: bool = True
    carry_forward_allowed: bool = False
    max_carry_forward_days: int = 0
    requires_documentation: bool = False
    status: str = "active"

class LeaveTypeCreate(LeaveTypeBase):
    pass

class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    color_code: Optional[str] = None
    days_allowed: Optional[int] = None
    is_paid: Optional[bool] = None
    carry_forward_allowed: Optional[bool] = None
    max_carry_forward_days: Optional[int] = None
    requires_documentation: Optional[bool] = None
    status: Optional[str] = None

class LeaveTypeResponse(LeaveTypeBase):
    id: int
    company_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
