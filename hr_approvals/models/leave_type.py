from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, UniqueConstraint
from sqlalchemy.sql import func
from hr_approvals.database import Base
import enum

class LeaveTypeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class LeaveType(Base):
    __tablename__ = "leave_types"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_leave_type_company_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)  # e.g. "AL", "SL"
    description = Column(Text, nullable=True)
    color_code = Column(String, nullable=True)
    days_allowed = Column(Integer, default=0, nullable=False)  # Annual entitlement
    is_paid = Column(Boolean, default=True, nullable=False)
    carry_forward_allowed = Column(Boolean, default=False, nullable=False)
    max_carry_forward_days = Column(Integer, default=0, nullable=False)
    requires_documentation = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=LeaveTypeStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status == LeaveTypeStatus.ACTIVE.value
