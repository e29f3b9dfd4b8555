from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hr_approvals.database import Base

class LeaveBalance(Base):
    """
    One ledger record per (employee, leave type, year).
    Available days are always derived, never stored.
    """
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance_tuple"),
        CheckConstraint("used_days >= 0 AND pending_days >= 0", name="ck_leave_balance_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    total_days = Column(Integer, default=0, nullable=False)
    used_days = Column(Integer, default=0, nullable=False)
    pending_days = Column(Integer, default=0, nullable=False)
    carried_forward_days = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee", back_populates="leave_balances")
    leave_type = relationship("LeaveType")

    @property
    def available(self) -> int:
        return self.total_days + self.carried_forward_days - self.used_days - self.pending_days
